"""Unit tests for logging infrastructure."""
import pytest
import logging
from pathlib import Path
from vidmerge.infrastructure.logging import setup_logging


def _flush():
    for handler in logging.getLogger().handlers:
        handler.flush()


def test_setup_logging_creates_log_file(tmp_path):
    """Test that setup_logging creates log file."""
    output_dir = tmp_path / "output"
    output_dir.mkdir()

    logger = setup_logging(output_dir, debug=False)

    assert logger is not None
    assert isinstance(logger, logging.Logger)

    # Check log file was created
    log_file = output_dir / "vidmerge.log"
    assert log_file.exists()


def test_setup_logging_debug_mode(tmp_path):
    """Test setup_logging in debug mode."""
    logger = setup_logging(tmp_path, debug=True)

    assert logger.getEffectiveLevel() == logging.DEBUG


def test_setup_logging_normal_mode(tmp_path):
    """Test setup_logging in normal mode."""
    logger = setup_logging(tmp_path, debug=False)

    assert logger.getEffectiveLevel() == logging.INFO


def test_setup_logging_creates_output_dir(tmp_path):
    """Test that setup_logging creates nested output directories."""
    output_dir = tmp_path / "missing" / "exports"

    setup_logging(output_dir, debug=False)

    assert output_dir.is_dir()


def test_setup_logging_custom_log_path(tmp_path):
    """Test that log_path overrides the output directory."""
    log_path = tmp_path / "logs" / "run.log"

    logger = setup_logging(tmp_path / "output", debug=False, log_path=log_path)
    logger.info("custom path message")
    _flush()

    assert "custom path message" in log_path.read_text()
    assert not (tmp_path / "output" / "vidmerge.log").exists()


def test_setup_logging_format_includes_level(tmp_path):
    """Test that log format includes level name and separator."""
    logger = setup_logging(tmp_path, debug=False)

    logger.info("Info message")
    logger.error("Error message")
    _flush()

    log_content = (tmp_path / "vidmerge.log").read_text()
    assert " - INFO - Info message" in log_content
    assert " - ERROR - Error message" in log_content


def test_setup_logging_debug_messages(tmp_path):
    """Test that debug messages only appear in debug mode."""
    logger_normal = setup_logging(tmp_path, debug=False)
    logger_normal.debug("Debug message in normal mode")
    _flush()

    log_file = tmp_path / "vidmerge.log"
    assert "Debug message in normal mode" not in log_file.read_text()

    logger_debug = setup_logging(tmp_path, debug=True)
    logger_debug.debug("Debug message in debug mode")
    _flush()

    assert "Debug message in debug mode" in log_file.read_text()
