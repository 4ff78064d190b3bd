"""
fitm standard locations.

Default base directory: ~/.fitm/ (holds config.json and fitm.log). The
fuzzing store itself lives under the configured ``work_dir``, not here.
"""

import os
from pathlib import Path

# Environment variable to override base directory
FITM_HOME_ENV = "FITM_HOME"


def get_base_dir() -> Path:
    """
    Get the fitm base directory.

    Priority:
    1. FITM_HOME environment variable
    2. ~/.fitm/ (default)
    """
    env_home = os.environ.get(FITM_HOME_ENV)
    if env_home:
        return Path(env_home).expanduser().resolve()
    return Path.home() / ".fitm"


def get_config_file() -> Path:
    return get_base_dir() / "config.json"


def get_log_file() -> Path:
    return get_base_dir() / "fitm.log"
