import subprocess
import logging
import threading
import time
from collections import deque
from pathlib import Path
from typing import List, Optional
from pydantic import BaseModel, Field
from vidmerge.config.models import NormalizationProfile
from vidmerge.domain.models import NormalizationJob


class TranscodeResult(BaseModel):
    returncode: Optional[int] = None
    stderr_tail: List[str] = Field(default_factory=list)
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return not self.cancelled and self.returncode == 0

    def describe(self) -> str:
        if self.cancelled:
            return "cancelled"
        detail = self.stderr_tail[-1] if self.stderr_tail else ""
        message = f"ffmpeg exited with code {self.returncode}"
        return f"{message}: {detail}" if detail else message


def build_video_filter(profile: NormalizationProfile) -> str:
    """Fit inside the target frame keeping aspect ratio, then letterbox."""
    w, h = profile.width, profile.height
    return (
        f"scale={w}:{h}:force_original_aspect_ratio=decrease,"
        f"pad={w}:{h}:(ow-iw)/2:(oh-ih)/2,"
        f"setsar=1,fps={profile.fps}"
    )


def escape_concat_path(path: Path) -> str:
    """Quote a path for the concat demuxer list file."""
    text = Path(path).resolve().as_posix()
    return "'" + text.replace("'", "'\\''") + "'"


class FFmpegAdapter:
    """Wrapper around ffmpeg for normalization and concat runs."""

    def __init__(self, ffmpeg_path: str = "ffmpeg"):
        self.ffmpeg_path = ffmpeg_path
        self.logger = logging.getLogger(__name__)

    def _base_command(self) -> List[str]:
        return [
            self.ffmpeg_path,
            "-y",  # Overwrite output files
            "-hide_banner",
            "-nostdin",
            "-loglevel", "error",
        ]

    def build_normalize_command(self, job: NormalizationJob) -> List[str]:
        """Constructs the re-encode command for one input."""
        profile = job.profile
        cmd = self._base_command()
        cmd.extend(["-i", str(job.source.path)])
        cmd.extend([
            "-vf", build_video_filter(profile),
            "-c:v", profile.video_codec,
            "-preset", profile.preset,
            "-crf", str(profile.crf),
            "-pix_fmt", profile.pix_fmt,
        ])
        cmd.extend([
            "-c:a", profile.audio_codec,
            "-ar", str(profile.audio_rate),
            "-ac", str(profile.audio_channels),
            "-b:a", profile.audio_bitrate,
        ])
        cmd.extend(["-progress", str(job.progress_path), "-nostats"])
        cmd.append(str(job.target_path))
        return cmd

    def build_concat_command(self, manifest_path: Path, output_path: Path, progress_path: Path) -> List[str]:
        """Constructs the stream-copy concat command (no re-encoding)."""
        cmd = self._base_command()
        cmd.extend([
            "-f", "concat",
            "-safe", "0",
            "-i", str(manifest_path),
            "-c", "copy",
            "-movflags", "+faststart",
        ])
        cmd.extend(["-progress", str(progress_path), "-nostats"])
        cmd.append(str(output_path))
        return cmd

    def run(self, cmd: List[str], shutdown_event: Optional[threading.Event] = None) -> TranscodeResult:
        """Runs ffmpeg and blocks until it exits or shutdown_event is set.

        OSError from launching the executable propagates to the caller.
        """
        self.logger.debug(f"FFMPEG_CMD: {' '.join(cmd)}")
        start_time = time.monotonic()

        process = subprocess.Popen(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            universal_newlines=True,
            bufsize=1
        )

        stderr_tail: "deque[str]" = deque(maxlen=20)

        def _reader():
            if not process.stderr:
                return
            for line in process.stderr:
                line = line.rstrip()
                if line:
                    stderr_tail.append(line)

        reader_thread = threading.Thread(target=_reader, daemon=True)
        reader_thread.start()

        try:
            while process.poll() is None:
                if shutdown_event and shutdown_event.is_set():
                    self.logger.info("FFMPEG_INTERRUPTED: cancel requested")
                    self._terminate(process)
                    reader_thread.join(timeout=1)
                    return TranscodeResult(cancelled=True, stderr_tail=list(stderr_tail))
                time.sleep(0.1)
        except KeyboardInterrupt:
            self.logger.info("FFMPEG_INTERRUPTED: KeyboardInterrupt")
            self._terminate(process)
            raise

        reader_thread.join(timeout=1)
        elapsed = time.monotonic() - start_time
        self.logger.debug(f"FFMPEG_END: code={process.returncode} elapsed={elapsed:.2f}s")
        return TranscodeResult(returncode=process.returncode, stderr_tail=list(stderr_tail))

    def _terminate(self, process: subprocess.Popen):
        process.terminate()
        try:
            process.wait(timeout=3)
        except subprocess.TimeoutExpired:
            process.kill()
            process.wait()
