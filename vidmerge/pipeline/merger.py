import logging
import shutil
import threading
from pathlib import Path
from typing import Callable, Optional
from vidmerge.domain.errors import MergeError, PipelineCancelled
from vidmerge.domain.models import MergePlan
from vidmerge.infrastructure.ffmpeg import FFmpegAdapter, escape_concat_path
from vidmerge.infrastructure.housekeeping import HousekeepingService
from vidmerge.infrastructure.progress import ProgressBand, ProgressMonitor

MANIFEST_NAME = "concat_list.txt"
MERGE_PROGRESS_NAME = "progress_merge.txt"


def write_manifest(plan: MergePlan, manifest_path: Path) -> Path:
    """Writes the concat demuxer list, one `file '<path>'` line per input."""
    lines = [f"file {escape_concat_path(p)}" for p in plan.normalized_paths]
    manifest_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return manifest_path


class Merger:
    """Stream-copy concatenation of already normalized files.

    ffmpeg writes into the workspace; the result is moved to the destination
    only after a clean exit, so a failed merge never leaves a destination file.
    """

    def __init__(
        self,
        ffmpeg_adapter: FFmpegAdapter,
        housekeeping: Optional[HousekeepingService] = None,
        band: Optional[ProgressBand] = None,
        poll_interval: float = 1.0,
    ):
        self.ffmpeg_adapter = ffmpeg_adapter
        self.housekeeping = housekeeping or HousekeepingService()
        self.band = band or ProgressBand(0.8, 1.0)
        self.poll_interval = poll_interval
        self.logger = logging.getLogger(__name__)

    def merge(
        self,
        plan: MergePlan,
        workspace: Path,
        total_duration: float,
        on_progress: Optional[Callable[[float, str], None]] = None,
        shutdown_event: Optional[threading.Event] = None,
    ) -> Path:
        if shutdown_event and shutdown_event.is_set():
            raise PipelineCancelled("Cancelled before merging")

        status = f"Merging {len(plan.normalized_paths)} files"
        manifest_path = write_manifest(plan, workspace / MANIFEST_NAME)
        progress_path = workspace / MERGE_PROGRESS_NAME
        partial_path = workspace / f"merged{plan.destination.suffix or '.mp4'}"
        cmd = self.ffmpeg_adapter.build_concat_command(manifest_path, partial_path, progress_path)
        self.logger.info(f"MERGE_START: {len(plan.normalized_paths)} files -> {plan.destination}")

        def _forward(value: float):
            if on_progress:
                on_progress(self.band.map(value), status)

        if on_progress:
            on_progress(self.band.start, status)

        monitor = ProgressMonitor(progress_path, total_duration, self.poll_interval, on_progress=_forward)
        try:
            try:
                with monitor:
                    result = self.ffmpeg_adapter.run(cmd, shutdown_event)
            except OSError as e:
                raise MergeError(f"Could not launch ffmpeg for merge: {e}") from e

            if result.cancelled:
                raise PipelineCancelled("Cancelled while merging")
            if not result.ok:
                self.logger.error(f"MERGE_FAILED: {result.describe()}")
                raise MergeError(f"Merging failed: {result.describe()}")
            if not partial_path.exists():
                raise MergeError("Merging produced no output")

            self._publish(partial_path, plan.destination)
        except Exception:
            self.housekeeping.remove_files([partial_path])
            raise
        finally:
            self.housekeeping.remove_files([manifest_path, progress_path])

        if on_progress:
            on_progress(self.band.end, status)
        self.logger.info(f"MERGE_END: {plan.destination}")
        return plan.destination

    def _publish(self, partial_path: Path, destination: Path):
        """Moves the merged file into place; a failed move leaves no new destination."""
        existed = destination.exists()
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(partial_path), str(destination))
        except OSError as e:
            if not existed:
                self.housekeeping.remove_files([destination])
            self.logger.error(f"MERGE_MOVE_FAILED: {partial_path.name} -> {destination}: {e}")
            raise MergeError(f"Could not write merged file to {destination}: {e}", path=destination) from e
