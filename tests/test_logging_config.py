"""Tests for logging_config.py."""

import logging

import pytest
from rich.logging import RichHandler

from hostguard.logging_config import ROOT_LOGGER, get_logger, level_for, setup_logging, verbosity_from_flags


class TestLevels:
    def test_level_for_each_verbosity(self):
        assert level_for("quiet") == logging.ERROR
        assert level_for("normal") == logging.WARNING
        assert level_for("verbose") == logging.DEBUG

    def test_unknown_verbosity(self):
        with pytest.raises(ValueError, match="Unknown verbosity 'loud'"):
            level_for("loud")

    def test_flags(self):
        assert verbosity_from_flags() == "normal"
        assert verbosity_from_flags(verbose=True) == "verbose"
        assert verbosity_from_flags(quiet=True) == "quiet"
        assert verbosity_from_flags(verbose=True, quiet=True) == "quiet"


class TestSetupLogging:
    def test_default_level(self):
        logger = setup_logging()
        assert logger.name == ROOT_LOGGER
        assert logger.level == logging.WARNING
        assert not logger.propagate
        assert [type(h) for h in logger.handlers] == [RichHandler]

    def test_verbosity_sets_level(self):
        assert setup_logging("verbose").level == logging.DEBUG
        assert setup_logging("quiet").level == logging.ERROR

    def test_repeated_setup_replaces_handlers(self):
        setup_logging("verbose")
        assert len(setup_logging("quiet").handlers) == 1

    def test_log_file(self, tmp_path):
        log_file = tmp_path / "run.log"
        logger = setup_logging(log_file=str(log_file))
        get_logger("driver").warning("Skipping A.cs: file not found")
        get_logger("driver").info("Analysing B.cs")
        setup_logging()
        text = log_file.read_text(encoding="utf-8")
        assert "hostguard.driver - WARNING - Skipping A.cs: file not found" in text
        assert "Analysing B.cs" not in text
        assert not any(isinstance(h, logging.FileHandler) for h in logger.handlers)

    def test_reconfiguring_closes_the_previous_log_file(self, tmp_path):
        logger = setup_logging(log_file=str(tmp_path / "run.log"))
        (file_handler,) = [h for h in logger.handlers if isinstance(h, logging.FileHandler)]
        setup_logging("quiet")
        assert file_handler.stream is None


class TestGetLogger:
    def test_prefixes_module_names(self):
        assert get_logger("driver").name == "hostguard.driver"
        assert get_logger("hostguard.fixer").name == "hostguard.fixer"
        assert get_logger().name == ROOT_LOGGER
