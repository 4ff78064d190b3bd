"""
Tests for fitm/state.py - StateCoordinate, Role and the transition rule.
"""

import pytest
from unittest.mock import patch

from fitm.state import ORIGIN, Role, StateCoordinate, as_role, next_state


class TestNextState:
    """Tests for the role-aware increment rule."""

    @pytest.mark.parametrize("client,server", [(0, 0), (0, 7), (3, 0), (12, 41)])
    def test_server_round_advances_server(self, client, server):
        """Server rounds bump the server counter only."""
        result = next_state(StateCoordinate(client, server), Role.SERVER)
        assert result == StateCoordinate(client, server + 1)

    @pytest.mark.parametrize("client,server", [(0, 0), (0, 7), (3, 0), (12, 41)])
    def test_client_round_advances_client(self, client, server):
        """Client rounds bump the client counter only."""
        result = next_state(StateCoordinate(client, server), Role.CLIENT)
        assert result == StateCoordinate(client + 1, server)

    def test_exactly_one_component_changes(self):
        """Every transition differs from its predecessor in exactly one counter, by one."""
        coord = StateCoordinate(4, 9)
        for role in Role:
            succ = next_state(coord, role)
            deltas = (succ.client_round - coord.client_round, succ.server_round - coord.server_round)
            assert sorted(deltas) == [0, 1]

    def test_deterministic(self):
        """Repeated calls with the same inputs yield equal results."""
        coord = StateCoordinate(2, 5)
        assert next_state(coord, Role.SERVER) == next_state(coord, Role.SERVER)
        assert next_state(coord, Role.CLIENT) == next_state(coord, Role.CLIENT)

    def test_input_not_mutated(self):
        coord = StateCoordinate(1, 1)
        next_state(coord, Role.SERVER)
        assert coord == StateCoordinate(1, 1)

    def test_no_filesystem_access(self):
        """The rule never touches the disk."""
        with patch("builtins.open") as mock_open, patch("os.stat") as mock_stat:
            next_state(StateCoordinate(0, 0), Role.CLIENT)
        mock_open.assert_not_called()
        mock_stat.assert_not_called()

    def test_cur_is_server_flag(self):
        """A driver's bool flag maps to the role it names, never to the client by default."""
        coord = StateCoordinate(2, 5)
        assert next_state(coord, True) == StateCoordinate(2, 6)
        assert next_state(coord, False) == StateCoordinate(3, 5)
        assert next_state(coord, True) == next_state(coord, Role.SERVER)

    @pytest.mark.parametrize("role", ["server", 1, 0, None])
    def test_rejects_other_role_types(self, role):
        with pytest.raises(TypeError):
            next_state(StateCoordinate(2, 5), role)

    def test_alternating_path_is_monotonic(self):
        """Walking alternating roles from the origin only ever grows the counters."""
        coord = ORIGIN
        roles = [Role.CLIENT, Role.SERVER] * 5
        for role in roles:
            succ = next_state(coord, role)
            assert succ.client_round >= coord.client_round
            assert succ.server_round >= coord.server_round
            coord = succ
        assert coord == StateCoordinate(5, 5)


class TestStateCoordinate:
    """Tests for the coordinate value type."""

    def test_frozen(self):
        coord = StateCoordinate(1, 2)
        with pytest.raises(AttributeError):
            coord.client_round = 3

    def test_hashable(self):
        assert len({StateCoordinate(1, 2), StateCoordinate(1, 2), StateCoordinate(2, 1)}) == 2

    def test_rejects_negative(self):
        with pytest.raises(ValueError):
            StateCoordinate(-1, 0)

    def test_rejects_non_int(self):
        with pytest.raises(ValueError):
            StateCoordinate(1.5, 0)
        with pytest.raises(ValueError):
            StateCoordinate(True, 0)

    def test_name_with_prefix(self):
        assert StateCoordinate(2, 5).name("fitm") == "fitm-c2s5"

    def test_name_default_prefix(self):
        assert StateCoordinate(0, 1).name() == "fitm-c0s1"

    def test_name_without_prefix(self):
        assert StateCoordinate(2, 5).name("") == "c2s5"
        assert StateCoordinate(2, 5).name(None) == "c2s5"
        assert str(StateCoordinate(2, 5)) == "c2s5"

    def test_parse(self):
        assert StateCoordinate.parse("fitm-c2s5") == StateCoordinate(2, 5)
        assert StateCoordinate.parse("c10s3", prefix="") == StateCoordinate(10, 3)
        assert StateCoordinate.parse("run-c0s0", prefix="run") == ORIGIN

    @pytest.mark.parametrize("name", ["c2s5", "fitm-c2", "fitm-cXs1", "fitm-c1s1-old", "other-c1s1"])
    def test_parse_rejects_malformed(self, name):
        with pytest.raises(ValueError):
            StateCoordinate.parse(name, prefix="fitm")

    def test_as_tuple(self):
        assert StateCoordinate(3, 4).as_tuple() == (3, 4)


class TestRole:
    def test_from_flag(self):
        assert Role.from_flag(True) is Role.SERVER
        assert Role.from_flag(False) is Role.CLIENT

    def test_from_value(self):
        assert Role("server") is Role.SERVER
        assert Role("client") is Role.CLIENT

    def test_as_role(self):
        assert as_role(Role.CLIENT) is Role.CLIENT
        assert as_role(True) is Role.SERVER
        assert as_role(False) is Role.CLIENT
        with pytest.raises(TypeError):
            as_role("client")
