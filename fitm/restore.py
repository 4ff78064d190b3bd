# fitm/restore.py
"""
Binding to the external restore-procedure generator.

For every freshly propagated active directory the generator writes a
procedure (``restore.sh`` by default) that recreates the recorded pipes and
resumes the frozen process with criu. Without it the state is unusable, so
any failure surfaces as ``RestoreGenerationError``.
"""

import importlib
import logging
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from fitm.errors import RestoreGenerationError
from fitm.store import ACTIVE_DIR

logger = logging.getLogger("fitm.restore")


class RestoreGenerator(ABC):
    def __init__(self, config=None):
        self.config = config
        self.logger = logging.getLogger(f"fitm.restore.{self.__class__.__name__}")

    @abstractmethod
    def generate(self, base_state: str, active_dir: str) -> None:
        """Produce the restore procedure for ``active_dir`` derived from ``base_state``."""
        pass


class ScriptRestoreGenerator(RestoreGenerator):
    """Runs ``<interpreter> <script> <base_state> <active_dir>`` from the work root."""

    def __init__(self, config=None, script: str = "create_restore.py", interpreter: str = "python3",
                 work_dir: str = ".", timeout: Optional[float] = 60, output_name: Optional[str] = "restore.sh"):
        super().__init__(config)
        if config is not None:
            script = config.get("restore_script", script)
            interpreter = config.get("restore_interpreter", interpreter)
            work_dir = config.get("work_dir", work_dir)
            timeout = config.get("restore_timeout", timeout)
            output_name = config.get("restore_output", output_name)
        self.script = script
        self.interpreter = interpreter
        self.work_dir = Path(work_dir).expanduser()
        self.timeout = timeout
        self.output_name = output_name

    def command(self, base_state: str, active_dir: str):
        return [self.interpreter, self.script, base_state, active_dir]

    def generate(self, base_state: str, active_dir: str) -> None:
        cmd = self.command(base_state, active_dir)
        self.logger.debug(f"Generating restore procedure: {' '.join(cmd)}")
        try:
            subprocess.run(cmd, cwd=self.work_dir, check=True, capture_output=True,
                           text=True, timeout=self.timeout)
        except subprocess.CalledProcessError as e:
            self.logger.error(f"Restore generator exited with {e.returncode} for {active_dir}: {e.stderr}")
            raise RestoreGenerationError(base_state, active_dir,
                                         f"Restore generator failed for '{active_dir}' (exit {e.returncode})",
                                         returncode=e.returncode, stderr=e.stderr or "") from e
        except subprocess.TimeoutExpired as e:
            self.logger.error(f"Restore generator timed out after {self.timeout}s for {active_dir}")
            raise RestoreGenerationError(base_state, active_dir,
                                         f"Restore generator timed out for '{active_dir}'") from e
        except OSError as e:
            self.logger.error(f"Could not spawn restore generator {cmd[0]}: {e}")
            raise RestoreGenerationError(base_state, active_dir,
                                         f"Could not spawn restore generator: {e}") from e

        if self.output_name:
            produced = self.work_dir / ACTIVE_DIR / active_dir / self.output_name
            if not produced.is_file():
                raise RestoreGenerationError(base_state, active_dir,
                                             f"Restore generator did not produce '{produced}'")
        self.logger.debug(f"Restore procedure ready for {active_dir}")


GENERATOR_MAP = {
    "script": ScriptRestoreGenerator,
    # Further generators (e.g. an in-process template writer) go here
}


def load_restore_generator(name: str, config=None) -> RestoreGenerator:
    """
    Resolve a generator by short name or by dotted ``module.ClassName`` path.

    Raises:
        ValueError: if the generator cannot be found or is not a RestoreGenerator.
    """
    generator_class = GENERATOR_MAP.get(name)
    if generator_class is None:
        module_name, _, class_name = name.rpartition(".")
        try:
            module = importlib.import_module(module_name)
            generator_class = getattr(module, class_name)
        except (ImportError, AttributeError, ValueError) as e:
            logger.error(f"Failed to load restore generator '{name}': {e}")
            raise ValueError(f"Invalid restore generator: {name}") from e
    if not (isinstance(generator_class, type) and issubclass(generator_class, RestoreGenerator)):
        raise ValueError(f"{name} is not a RestoreGenerator")
    logger.debug(f"Loaded restore generator: {name}")
    return generator_class(config)
