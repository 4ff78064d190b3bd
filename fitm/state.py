# fitm/state.py
"""
Fuzzing state coordinates.

A state is identified by how many client rounds and how many server rounds
have been fuzzed on the path from the origin ``(0, 0)``. Every transition
advances exactly one of the two counters by one.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

DEFAULT_PREFIX = "fitm"

_NAME_RE = re.compile(r"^c(\d+)s(\d+)$")


class Role(Enum):
    """Side of the protocol pair whose round is being advanced."""
    CLIENT = "client"
    SERVER = "server"

    @classmethod
    def from_flag(cls, cur_is_server: bool) -> "Role":
        return cls.SERVER if cur_is_server else cls.CLIENT


@dataclass(frozen=True)
class StateCoordinate:
    client_round: int = 0
    server_round: int = 0

    def __post_init__(self):
        for field_name in ("client_round", "server_round"):
            value = getattr(self, field_name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise ValueError(f"{field_name} must be a non-negative int, got {value!r}")

    def name(self, prefix: Optional[str] = DEFAULT_PREFIX) -> str:
        """Directory name, e.g. ``fitm-c2s5`` (or ``c2s5`` with an empty prefix)."""
        bare = f"c{self.client_round}s{self.server_round}"
        return f"{prefix}-{bare}" if prefix else bare

    @classmethod
    def parse(cls, name: str, prefix: Optional[str] = DEFAULT_PREFIX) -> "StateCoordinate":
        """Inverse of :meth:`name`. Raises ValueError for anything else."""
        bare = name
        if prefix:
            head = f"{prefix}-"
            if not name.startswith(head):
                raise ValueError(f"State name '{name}' does not start with '{head}'")
            bare = name[len(head):]
        match = _NAME_RE.match(bare)
        if not match:
            raise ValueError(f"Malformed state name '{name}'")
        return cls(int(match.group(1)), int(match.group(2)))

    def as_tuple(self):
        return (self.client_round, self.server_round)

    def __str__(self) -> str:
        return self.name(prefix=None)


ORIGIN = StateCoordinate(0, 0)


def as_role(role: Union[Role, bool]) -> Role:
    """Accept a Role or a driver's ``cur_is_server`` flag; reject anything else."""
    if isinstance(role, bool):
        return Role.from_flag(role)
    if not isinstance(role, Role):
        raise TypeError(f"role must be a Role or a cur_is_server bool, got {role!r}")
    return role


def next_state(coordinate: StateCoordinate, role: Union[Role, bool]) -> StateCoordinate:
    """
    Successor of ``coordinate`` when the ``role`` round is advanced.

    SERVER increments the server counter, CLIENT increments the client
    counter; the other counter is carried over. A bool is read as a
    ``cur_is_server`` flag. Pure, no I/O.
    """
    if as_role(role) is Role.SERVER:
        return StateCoordinate(coordinate.client_round, coordinate.server_round + 1)
    return StateCoordinate(coordinate.client_round + 1, coordinate.server_round)
