# fitm/store.py
"""
On-disk snapshot store.

Layout under the work root::

    active-state/<dir>/            transient, being fuzzed or restored
    active-state/<dir>/snapshot/   checkpoint image (opaque, from criu)
    active-state/<dir>/pipes       pipe registry of the frozen process
    saved-states/<coord>/          committed, write-once
    saved-states/<coord>/snapshot/
    saved-states/<coord>/pipes

There is no locking. Operations on different coordinates may run
concurrently; at most one writer per coordinate is the caller's job.
"""

import logging
import os
from pathlib import Path
from typing import List, Optional, Union

from fitm import fileops
from fitm.errors import (AllocationError, CopyError, PromotionError,
                         PropagationError, StartupError)
from fitm.state import DEFAULT_PREFIX, StateCoordinate

ACTIVE_DIR = "active-state"
SAVED_DIR = "saved-states"
SNAPSHOT_NAME = "snapshot"
PIPES_NAME = "pipes"

StateRef = Union[StateCoordinate, str]

logger = logging.getLogger("fitm.store")


class SnapshotStore:
    def __init__(self, root: str = ".", prefix: Optional[str] = DEFAULT_PREFIX):
        self.root = Path(root).expanduser()
        self.prefix = prefix
        self.active_root = self.root / ACTIVE_DIR
        self.saved_root = self.root / SAVED_DIR

    # === Layout ===

    def ensure_layout(self) -> None:
        """
        Create ``active-state/`` and ``saved-states/`` if absent.

        All or nothing: directories created by this call are removed again
        before ``StartupError`` is raised.
        """
        created = []
        for area in (self.root, self.active_root, self.saved_root):
            if area.is_dir():
                continue
            try:
                area.mkdir(parents=area is self.root)
            except OSError as e:
                logger.error(f"Could not create store directory {area}: {e}")
                self._rollback_layout(created)
                raise StartupError(f"Could not create store directory '{area}': {e}") from e
            created.append(area)
            logger.debug(f"Created store directory {area}")

    def _rollback_layout(self, created: List[Path]) -> None:
        for area in reversed(created):
            try:
                area.rmdir()
            except OSError as e:
                logger.error(f"Could not roll back store directory {area}: {e}")

    def state_name(self, ref: StateRef) -> str:
        if isinstance(ref, StateCoordinate):
            return ref.name(self.prefix)
        return str(ref)

    def active_path(self, ref: StateRef) -> Path:
        return self.active_root / self.state_name(ref)

    def saved_path(self, ref: StateRef) -> Path:
        return self.saved_root / self.state_name(ref)

    # === Lifecycle ===

    def allocate(self, active_dir: StateRef) -> Path:
        """Create an empty active directory. Populated targets are a coordinate reuse bug."""
        path = self.active_path(active_dir)
        if path.exists():
            if not path.is_dir():
                raise AllocationError(str(path), f"Active path '{path}' exists and is not a directory")
            if any(path.iterdir()):
                logger.error(f"Refusing to allocate populated active directory {path}")
                raise AllocationError(str(path))
            logger.debug(f"Reusing empty active directory {path}")
            return path
        try:
            path.mkdir(parents=True)
        except FileExistsError as e:
            raise AllocationError(str(path), f"Active directory '{path}' appeared concurrently") from e
        logger.debug(f"Allocated active directory {path}")
        return path

    def propagate(self, base: StateRef, active_dir: StateRef) -> Path:
        """
        Copy the saved snapshot and pipe registry of ``base`` into ``active_dir``.

        Missing predecessor files are detected before anything is written. A
        failure during the copy leaves the destination incomplete; the caller
        must ``discard`` it.
        """
        base_name = self.state_name(base)
        saved = self.saved_path(base)
        old_snapshot = saved / SNAPSHOT_NAME
        old_pipes = saved / PIPES_NAME
        target = self.active_path(active_dir)

        if not old_snapshot.is_dir():
            logger.error(f"No saved snapshot for base state {base_name} at {old_snapshot}")
            raise PropagationError(base_name, str(target),
                                   f"Base state '{base_name}' has no saved snapshot at '{old_snapshot}'")
        if not old_pipes.is_file():
            logger.error(f"No pipes file for base state {base_name} at {old_pipes}")
            raise PropagationError(base_name, str(target),
                                   f"Base state '{base_name}' has no pipes file at '{old_pipes}'")
        if (target / SNAPSHOT_NAME).exists() or (target / PIPES_NAME).exists():
            raise PropagationError(base_name, str(target),
                                   f"Active directory '{target}' already holds a snapshot")

        try:
            target.mkdir(parents=True, exist_ok=True)
            fileops.copy_into(old_snapshot, target)
            fileops.copy(old_pipes, target / PIPES_NAME)
        except (CopyError, OSError) as e:
            logger.error(f"Propagating {base_name} into {target} failed: {e}")
            raise PropagationError(base_name, str(target),
                                   f"Could not propagate '{base_name}' into '{target}': {e}") from e

        logger.debug(f"Propagated snapshot of {base_name} into {target}")
        return target

    def promote(self, active_dir: StateRef, coordinate: StateRef) -> Path:
        """
        Move an active directory into ``saved-states/<coordinate>``.

        Committed snapshots are never overwritten. A ``MoveError`` from the
        underlying move is raised as is, so its ``stage`` stays visible.
        """
        source = self.active_path(active_dir)
        destination = self.saved_path(coordinate)
        if not source.is_dir():
            raise PromotionError(str(source), str(destination),
                                 f"Active directory '{source}' does not exist")
        if os.path.lexists(destination):
            logger.error(f"Saved state {destination} already exists, refusing to overwrite")
            raise PromotionError(str(source), str(destination),
                                 f"Saved state '{destination}' already exists")

        fileops.move(source, destination)
        logger.info(f"Promoted {source.name} to saved state {destination.name}")
        return destination

    def seed(self, coordinate: StateRef, snapshot_dir: str, pipes_file: str) -> Path:
        """
        Commit an externally produced checkpoint (e.g. the origin freeze).

        Staged in the active area first so the saved directory only appears
        once complete.
        """
        destination = self.saved_path(coordinate)
        if os.path.lexists(destination):
            raise PromotionError(str(self.active_path(coordinate)), str(destination),
                                 f"Saved state '{destination}' already exists")
        staging = self.allocate(coordinate)
        try:
            fileops.copy(snapshot_dir, staging / SNAPSHOT_NAME)
            fileops.copy(pipes_file, staging / PIPES_NAME)
        except CopyError:
            self.discard(coordinate)
            raise
        return self.promote(coordinate, coordinate)

    def discard(self, active_dir: StateRef) -> None:
        """Drop an active directory, e.g. after a failed propagation."""
        path = self.active_path(active_dir)
        if not os.path.lexists(path):
            return
        fileops.remove(path)
        logger.info(f"Discarded active directory {path}")

    # === Queries ===

    def has_snapshot(self, ref: StateRef) -> bool:
        saved = self.saved_path(ref)
        return (saved / SNAPSHOT_NAME).is_dir() and (saved / PIPES_NAME).is_file()

    def saved_states(self) -> List[StateCoordinate]:
        return self._list_area(self.saved_root)

    def active_states(self) -> List[StateCoordinate]:
        return self._list_area(self.active_root)

    def _list_area(self, area: Path) -> List[StateCoordinate]:
        if not area.is_dir():
            return []
        states = []
        for entry in area.iterdir():
            try:
                states.append(StateCoordinate.parse(entry.name, self.prefix))
            except ValueError:
                logger.debug(f"Skipping foreign entry {entry}")
        return sorted(states, key=StateCoordinate.as_tuple)
