# fitm/errors.py
"""
Error taxonomy for the fitm state store.

Nothing in here is retried internally. Every error is raised to the caller,
which decides whether to drop the affected state, re-derive it or stop.
"""

from typing import Optional


class FitmError(Exception):
    """Base class for every fitm error."""
    pass


class StartupError(FitmError):
    """Privilege missing or store directories could not be created."""
    pass


class AllocationError(FitmError):
    """Target active directory already exists and is populated."""

    def __init__(self, path: str, message: Optional[str] = None):
        self.path = path
        super().__init__(message or f"Active directory '{path}' is already populated")


class PropagationError(FitmError):
    """Predecessor snapshot missing/unreadable or copy failed mid-transfer."""

    def __init__(self, base_state: str, active_dir: str, message: str):
        self.base_state = base_state
        self.active_dir = active_dir
        super().__init__(message)


class PromotionError(FitmError):
    """Active directory missing or saved destination already committed."""

    def __init__(self, active_dir: str, saved_dir: str, message: str):
        self.active_dir = active_dir
        self.saved_dir = saved_dir
        super().__init__(message)


class FileOpError(FitmError):
    """Base for filesystem primitive failures, with the paths attached."""

    def __init__(self, source: str, destination: Optional[str], cause: Optional[BaseException]):
        self.source = source
        self.destination = destination
        self.cause = cause
        super().__init__(self._describe())

    def _describe(self) -> str:
        return f"{self.__class__.__name__}: '{self.source}' -> '{self.destination}': {self.cause}"


class CopyError(FileOpError):
    pass


class MoveError(FileOpError):
    """
    Move failed. ``stage`` tells which half broke:

    - ``"copy"``: source intact, destination partial or absent
    - ``"delete"``: destination complete, source (partially) still present
    """

    def __init__(self, source: str, destination: str, cause: Optional[BaseException], stage: str):
        self.stage = stage
        super().__init__(source, destination, cause)

    def _describe(self) -> str:
        return (f"MoveError during {self.stage}: '{self.source}' -> "
                f"'{self.destination}': {self.cause}")


class RemoveError(FileOpError):
    def __init__(self, path: str, cause: Optional[BaseException]):
        super().__init__(path, None, cause)

    def _describe(self) -> str:
        return f"RemoveError: '{self.source}': {self.cause}"


class RestoreGenerationError(FitmError):
    """External restore generator failed; fatal for that state only."""

    def __init__(self, base_state: str, active_dir: str, message: str,
                 returncode: Optional[int] = None, stderr: str = ""):
        self.base_state = base_state
        self.active_dir = active_dir
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)
