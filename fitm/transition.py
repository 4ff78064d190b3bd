# fitm/transition.py
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from fitm.restore import RestoreGenerator
from fitm.state import Role, StateCoordinate, as_role, next_state
from fitm.store import SnapshotStore

logger = logging.getLogger("fitm.transition")


@dataclass(frozen=True)
class FuzzRun:
    """A materialized state handed to the fuzz driver."""
    base_state: StateCoordinate
    state: StateCoordinate
    active_dir: str
    role: Role

    @property
    def cur_is_server(self) -> bool:
        return self.role is Role.SERVER


class TransitionEngine:
    """
    Derives successor states from committed ones.

    ``derive`` runs allocate -> propagate -> restore generation in that
    order and stops at the first failure; the restore generator is only
    called for fully propagated directories.
    """

    def __init__(self, store: SnapshotStore, generator: RestoreGenerator):
        self.store = store
        self.generator = generator
        self.logger = logger

    def next_coordinate(self, base: StateCoordinate, role: Role) -> StateCoordinate:
        return next_state(base, role)

    def derive(self, base: Union[StateCoordinate, str], role: Union[Role, bool]) -> FuzzRun:
        role = as_role(role)
        if not isinstance(base, StateCoordinate):
            base = StateCoordinate.parse(base, self.store.prefix)
        state = self.next_coordinate(base, role)
        base_name = self.store.state_name(base)
        active_dir = self.store.state_name(state)
        self.logger.debug(f"Deriving {active_dir} from {base_name} ({role.value} round)")

        self.store.allocate(active_dir)
        self.store.propagate(base, active_dir)
        self.generator.generate(base_name, active_dir)

        self.logger.info(f"Derived state {active_dir} from {base_name}")
        return FuzzRun(base_state=base, state=state, active_dir=active_dir, role=role)

    def commit(self, run: FuzzRun) -> Path:
        """Promote a run's active directory once its checkpoint has been captured."""
        return self.store.promote(run.active_dir, run.state)
