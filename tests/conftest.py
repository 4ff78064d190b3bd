"""
Pytest configuration and fixtures for fitm tests.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path for all imports
project_root = str(Path(__file__).parent.parent)
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from fitm.errors import RestoreGenerationError
from fitm.restore import RestoreGenerator
from fitm.store import SnapshotStore


class RecordingGenerator(RestoreGenerator):
    """Writes a stub restore.sh and remembers every call."""

    def __init__(self, store=None):
        super().__init__(None)
        self.store = store
        self.calls = []

    def generate(self, base_state, active_dir):
        self.calls.append((base_state, active_dir))
        if self.store is not None:
            (self.store.active_path(active_dir) / "restore.sh").write_text("#!/bin/sh\n")


class FailingGenerator(RestoreGenerator):
    def __init__(self):
        super().__init__(None)
        self.calls = []

    def generate(self, base_state, active_dir):
        self.calls.append((base_state, active_dir))
        raise RestoreGenerationError(base_state, active_dir, "generator exploded", returncode=2)


def write_snapshot(state_dir: Path, core: bytes = b"ABCD", pipes: str = "fd3:named"):
    """Lay out a checkpoint the way criu and the pipe tracker leave it."""
    snapshot = state_dir / "snapshot"
    (snapshot / "nested").mkdir(parents=True)
    (snapshot / "core.img").write_bytes(core)
    (snapshot / "nested" / "pages-1.img").write_bytes(b"\x00\x01\x02\x03" * 16)
    (state_dir / "pipes").write_text(pipes)
    return state_dir


@pytest.fixture(autouse=True)
def isolated_fitm_home(tmp_path, monkeypatch):
    """Keep config.json and fitm.log out of the real home directory."""
    home = tmp_path / "fitm_home"
    monkeypatch.setenv("FITM_HOME", str(home))
    return home


@pytest.fixture
def work_root(tmp_path):
    root = tmp_path / "work"
    root.mkdir()
    return root


@pytest.fixture
def store(work_root):
    """Store using bare cXsY names."""
    s = SnapshotStore(str(work_root), prefix="")
    s.ensure_layout()
    return s


@pytest.fixture
def seeded_store(store):
    """Store whose origin c0s0 holds core.img == b'ABCD' and pipes == 'fd3:named'."""
    write_snapshot(store.saved_path("c0s0"))
    return store


@pytest.fixture
def recording_generator(store):
    return RecordingGenerator(store)


@pytest.fixture
def failing_generator():
    return FailingGenerator()
