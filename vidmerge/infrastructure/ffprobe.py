import subprocess
from pathlib import Path
from typing import Any

class FFprobeAdapter:
    """Wrapper around ffprobe to read a media file's duration."""

    def __init__(self, ffprobe_path: str = "ffprobe"):
        self.ffprobe_path = ffprobe_path

    @classmethod
    def _parse_duration_value(cls, value: Any) -> float:
        if value is None:
            return 0.0
        text = str(value).strip()
        if not text or text.upper() == "N/A":
            return 0.0
        try:
            return float(text)
        except ValueError:
            pass
        if ":" in text:
            parts = text.split(":")
            if len(parts) in (2, 3):
                try:
                    parts_f = [float(p) for p in parts]
                except ValueError:
                    return 0.0
                if len(parts_f) == 2:
                    minutes, seconds = parts_f
                    return minutes * 60 + seconds
                hours, minutes, seconds = parts_f
                return hours * 3600 + minutes * 60 + seconds
        return 0.0

    def _build_command(self, file_path: Path) -> list:
        return [
            self.ffprobe_path,
            "-v", "error",
            "-show_entries", "format=duration",
            "-of", "default=noprint_wrappers=1:nokey=1",
            str(file_path),
        ]

    def get_duration(self, file_path: Path) -> float:
        """Executes ffprobe and parses the value-only duration output.

        Raises RuntimeError on a non-zero exit and ValueError when no positive
        duration can be parsed. FileNotFoundError propagates when the ffprobe
        executable itself is missing.
        """
        result = subprocess.run(self._build_command(file_path), capture_output=True, text=True)
        if result.returncode != 0:
            raise RuntimeError(f"ffprobe failed for {file_path}: {(result.stderr or '').strip()}")

        lines = [line.strip() for line in (result.stdout or "").splitlines() if line.strip()]
        duration = self._parse_duration_value(lines[0]) if lines else 0.0
        if duration <= 0:
            raise ValueError(f"No duration reported for {file_path}")
        return duration
