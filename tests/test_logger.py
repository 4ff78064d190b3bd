"""
Tests for fitm/logger.py - config-driven logger setup.
"""

import logging
from logging.handlers import RotatingFileHandler

import colorlog
import pytest

from fitm.config import FitmConfig
from fitm.logger import resolve_level, setup_fitm_logger


@pytest.fixture(autouse=True)
def reset_fitm_logger():
    yield
    logger = logging.getLogger("fitm")
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()


class TestResolveLevel:
    def test_names(self):
        assert resolve_level("DEBUG") == logging.DEBUG
        assert resolve_level("warning") == logging.WARNING

    def test_unknown_falls_back_to_info(self):
        assert resolve_level("CHATTY") == logging.INFO

    def test_quiet_wins(self):
        assert resolve_level("DEBUG", quiet=True) == logging.WARNING


class TestSetupLogger:
    def test_file_location_and_rotation_from_config(self, tmp_path):
        log_file = tmp_path / "logs" / "run.log"
        cfg = FitmConfig(log_file=str(log_file), log_max_bytes=1024, log_backup_count=2)
        logger = setup_fitm_logger(cfg)

        handler, = logger.handlers
        assert isinstance(handler, RotatingFileHandler)
        assert handler.baseFilename == str(log_file)
        assert handler.maxBytes == 1024
        assert handler.backupCount == 2
        assert log_file.exists()

    def test_default_file_under_fitm_home(self, isolated_fitm_home):
        setup_fitm_logger(FitmConfig())
        assert (isolated_fitm_home / "fitm.log").exists()

    def test_console_colour_toggle(self):
        logger = setup_fitm_logger(FitmConfig(), log_to_console=True, log_to_file=False)
        assert isinstance(logger.handlers[0].formatter, colorlog.ColoredFormatter)

        logger = setup_fitm_logger(FitmConfig(log_color=False), log_to_console=True, log_to_file=False)
        assert not isinstance(logger.handlers[0].formatter, colorlog.ColoredFormatter)

    def test_level_and_quiet(self):
        logger = setup_fitm_logger(FitmConfig(log_level="DEBUG"), log_to_file=False)
        assert logger.level == logging.DEBUG

        logger = setup_fitm_logger(FitmConfig(log_level="DEBUG"), log_to_console=True,
                                   log_to_file=False, quiet=True)
        assert logger.level == logging.WARNING
        assert logger.handlers[0].level == logging.WARNING

    def test_repeated_setup_replaces_handlers(self, tmp_path):
        cfg = FitmConfig(log_file=str(tmp_path / "fitm.log"))
        setup_fitm_logger(cfg, log_to_console=True)
        logger = setup_fitm_logger(cfg, log_to_console=True)
        assert len(logger.handlers) == 2
