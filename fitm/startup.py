# fitm/startup.py
"""
Process bootstrap preconditions.

criu needs root to freeze and thaw processes, so the privilege check runs
before anything touches the disk.
"""

import logging
import os
from typing import Dict, MutableMapping, Optional

import psutil

from fitm.errors import StartupError
from fitm.state import DEFAULT_PREFIX
from fitm.store import SnapshotStore

logger = logging.getLogger("fitm.startup")

CRIU_PRIVILEGE_HINT = ("Please execute fitm as root as it is needed for criu. "
                       "For reference please visit https://criu.org/Self_dump#Difficulties")


def is_privileged() -> bool:
    return os.geteuid() == 0


def check_privilege(require_root: bool = True) -> None:
    if not require_root:
        logger.debug("Privilege check disabled by configuration")
        return
    if not is_privileged():
        logger.error(CRIU_PRIVILEGE_HINT)
        raise StartupError(CRIU_PRIVILEGE_HINT)


def configure_fuzzer_environment(flags: Dict[str, str],
                                 environ: Optional[MutableMapping[str, str]] = None) -> None:
    """Export the fuzzer flags (AFL_SKIP_CPUFREQ and friends)."""
    if environ is None:
        environ = os.environ
    for key, value in flags.items():
        environ[key] = str(value)
        logger.debug(f"Set {key}={value}")


def report_free_disk(root: str, min_free_mb: int = 0) -> float:
    """Log free space on the filesystem holding ``root``; returns MiB free."""
    usage = psutil.disk_usage(str(root))
    free_mb = usage.free / (1024 * 1024)
    if min_free_mb and free_mb < min_free_mb:
        logger.warning(f"Only {free_mb:.0f} MiB free under {root} (want {min_free_mb} MiB); "
                       f"snapshot copies may fail")
    else:
        logger.debug(f"{free_mb:.0f} MiB free under {root}")
    return free_mb


def bootstrap(cfg) -> SnapshotStore:
    """Run every startup precondition and return a ready store."""
    check_privilege(cfg.get("require_root", True))
    configure_fuzzer_environment(cfg.get("fuzzer_env") or {})

    store = SnapshotStore(cfg.get("work_dir", "."), cfg.get("state_prefix", DEFAULT_PREFIX))
    store.ensure_layout()
    report_free_disk(store.root, cfg.get("min_free_disk_mb", 0))
    logger.info(f"Store ready under {store.root.resolve()}")
    return store
