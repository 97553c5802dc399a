"""Unit tests for the ffprobe duration adapter."""
import pytest
from pathlib import Path
from unittest.mock import patch, MagicMock
from vidmerge.infrastructure.ffprobe import FFprobeAdapter


@pytest.fixture
def ffprobe():
    return FFprobeAdapter()


def test_get_duration_parses_value_only_output(ffprobe):
    with patch('subprocess.run') as mock_run:
        mock_run.return_value = MagicMock(returncode=0, stdout="12.345000\n", stderr="")
        assert ffprobe.get_duration(Path("clip.mp4")) == pytest.approx(12.345)


def test_get_duration_command_uses_configured_executable():
    adapter = FFprobeAdapter("/opt/bin/ffprobe")
    cmd = adapter._build_command(Path("clip.mp4"))

    assert cmd[0] == "/opt/bin/ffprobe"
    assert "format=duration" in cmd
    assert "default=noprint_wrappers=1:nokey=1" in cmd
    assert cmd[-1] == "clip.mp4"


def test_get_duration_nonzero_exit_raises(ffprobe):
    with patch('subprocess.run') as mock_run:
        mock_run.return_value = MagicMock(returncode=1, stdout="", stderr="No such file or directory")
        with pytest.raises(RuntimeError, match="ffprobe failed"):
            ffprobe.get_duration(Path("missing.mp4"))


@pytest.mark.parametrize("stdout", ["", "N/A\n", "garbage\n", "0.000000\n"])
def test_get_duration_unusable_output_raises(ffprobe, stdout):
    with patch('subprocess.run') as mock_run:
        mock_run.return_value = MagicMock(returncode=0, stdout=stdout, stderr="")
        with pytest.raises(ValueError, match="No duration"):
            ffprobe.get_duration(Path("clip.mp4"))


def test_get_duration_missing_executable_propagates(ffprobe):
    with patch('subprocess.run', side_effect=FileNotFoundError("ffprobe")):
        with pytest.raises(FileNotFoundError):
            ffprobe.get_duration(Path("clip.mp4"))


def test_parse_duration_value_clock_format():
    assert FFprobeAdapter._parse_duration_value("01:02:03.5") == pytest.approx(3723.5)
    assert FFprobeAdapter._parse_duration_value("02:30") == pytest.approx(150.0)
    assert FFprobeAdapter._parse_duration_value("1:x:3") == 0.0
