# fitm/config.py
import json
import os
from typing import Any, Dict, Optional

from fitm.errors import FitmError
from fitm.paths import get_config_file
from fitm.state import DEFAULT_PREFIX

DEFAULT_FUZZER_ENV = {
    "AFL_I_DONT_CARE_ABOUT_MISSING_CRASHES": "1",
    "AFL_SKIP_CPUFREQ": "1",
    "AFL_DEBUG_CHILD_OUTPUT": "1",
}


class FitmConfigError(FitmError):
    """Configuration could not be loaded or saved."""
    pass


def default_config() -> Dict[str, Any]:
    return {
        "work_dir": ".",
        "state_prefix": DEFAULT_PREFIX,
        "restore_generator": "script",
        "restore_script": "create_restore.py",
        "restore_interpreter": "python3",
        "restore_timeout": 60,
        "restore_output": "restore.sh",
        "require_root": True,
        "min_free_disk_mb": 1024,
        "fuzzer_env": dict(DEFAULT_FUZZER_ENV),
        "log_level": "INFO",
        "log_file": None,
        "log_max_bytes": 5 * 1024 * 1024,
        "log_backup_count": 5,
        "log_color": True,
    }


class FitmConfig:
    def __init__(self, **kwargs):
        data = default_config()
        data.update(kwargs)
        data["work_dir"] = os.path.expanduser(data["work_dir"])
        self._data = data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def __getattr__(self, name: str) -> Any:
        if name in self._data:
            return self._data[name]
        raise AttributeError(f"'FitmConfig' object has no attribute '{name}'")

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "_data":
            super().__setattr__(name, value)
        else:
            self._data[name] = value

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._data)

    @staticmethod
    def resolve_path(path: Optional[str] = None) -> str:
        if path is None:
            return str(get_config_file())
        return os.path.expanduser(path)

    @classmethod
    def load(cls, path: Optional[str] = None, write_default: bool = True) -> "FitmConfig":
        """
        Load config.json. A missing file yields the defaults, which are
        written out first unless ``write_default`` is False.
        """
        config_path = cls.resolve_path(path)
        if not os.path.exists(config_path):
            cfg = cls()
            if write_default:
                cfg.save(config_path)
            return cfg

        try:
            with open(config_path, "r") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise FitmConfigError(f"Failed to load config from {config_path}: {e}")
        if not isinstance(data, dict):
            raise FitmConfigError(f"Config {config_path} must hold a JSON object")
        return cls(**data)

    def save(self, path: Optional[str] = None) -> None:
        config_path = self.resolve_path(path)
        try:
            os.makedirs(os.path.dirname(config_path) or ".", exist_ok=True)
            with open(config_path, "w") as f:
                json.dump(self._data, f, indent=2)
        except OSError as e:
            raise FitmConfigError(f"Failed to save fitm config: {e}")
