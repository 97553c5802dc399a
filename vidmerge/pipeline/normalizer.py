import logging
import threading
from pathlib import Path
from typing import Callable, List, Optional
from vidmerge.config.models import NormalizationProfile
from vidmerge.domain.errors import NormalizationError, PipelineCancelled
from vidmerge.domain.events import FileNormalized
from vidmerge.domain.models import MediaFile, NormalizationJob
from vidmerge.infrastructure.event_bus import EventBus
from vidmerge.infrastructure.ffmpeg import FFmpegAdapter
from vidmerge.infrastructure.housekeeping import HousekeepingService
from vidmerge.infrastructure.progress import ProgressBand, ProgressMonitor

ProgressCallback = Callable[[float, str], None]


def normalized_name(index: int, extension: str) -> str:
    return f"normalized_{index:03d}{extension}"


def split_bands(files: List[MediaFile], weight: float) -> List[ProgressBand]:
    """Duration-proportional slices of [0, weight], one per file.

    When no duration is known (all probes degraded) every file gets an equal share.
    """
    durations = [f.duration or 0.0 for f in files]
    total = sum(durations)
    if total <= 0:
        durations = [1.0] * len(files)
        total = float(len(files))

    bands = []
    done = 0.0
    for duration in durations:
        start = weight * done / total
        done += duration
        end = min(weight, weight * done / total)
        bands.append(ProgressBand(min(start, end), end))
    return bands


class Normalizer:
    """Re-encodes inputs one at a time into the common target profile.

    All-or-nothing: on the first failure every output produced so far is
    removed and NormalizationError names the failing input.
    """

    def __init__(
        self,
        ffmpeg_adapter: FFmpegAdapter,
        profile: NormalizationProfile,
        event_bus: Optional[EventBus] = None,
        housekeeping: Optional[HousekeepingService] = None,
        normalize_weight: float = 0.8,
        poll_interval: float = 1.0,
    ):
        self.ffmpeg_adapter = ffmpeg_adapter
        self.profile = profile
        self.event_bus = event_bus
        self.housekeeping = housekeeping or HousekeepingService()
        self.normalize_weight = normalize_weight
        self.poll_interval = poll_interval
        self.logger = logging.getLogger(__name__)

    def build_jobs(self, files: List[MediaFile], workspace: Path) -> List[NormalizationJob]:
        return [
            NormalizationJob(
                index=index,
                source=media_file,
                target_path=workspace / normalized_name(index, self.profile.extension),
                progress_path=workspace / f"progress_{index:03d}.txt",
                profile=self.profile,
            )
            for index, media_file in enumerate(files)
        ]

    def normalize(
        self,
        files: List[MediaFile],
        workspace: Path,
        on_progress: Optional[ProgressCallback] = None,
        shutdown_event: Optional[threading.Event] = None,
    ) -> List[Path]:
        jobs = self.build_jobs(files, workspace)
        bands = split_bands(files, self.normalize_weight)
        produced: List[Path] = []

        try:
            for job, band in zip(jobs, bands):
                if shutdown_event and shutdown_event.is_set():
                    raise PipelineCancelled(f"Cancelled before normalizing {job.source.path.name}")
                status = f"Normalizing {job.index + 1}/{len(jobs)}: {job.source.path.name}"
                if on_progress:
                    on_progress(band.start, status)
                self._normalize_one(job, band, status, on_progress, shutdown_event)
                produced.append(job.target_path)
                if self.event_bus:
                    self.event_bus.publish(
                        FileNormalized(index=job.index, source=job.source.path, target=job.target_path)
                    )
        except Exception:
            self.housekeeping.remove_files([job.target_path for job in jobs])
            raise
        finally:
            self.housekeeping.remove_files([job.progress_path for job in jobs])

        return produced

    def _normalize_one(
        self,
        job: NormalizationJob,
        band: ProgressBand,
        status: str,
        on_progress: Optional[ProgressCallback],
        shutdown_event: Optional[threading.Event],
    ):
        name = job.source.path.name
        cmd = self.ffmpeg_adapter.build_normalize_command(job)
        self.logger.info(f"NORMALIZE_START: {name} -> {job.target_path.name} (duration={job.source.duration or 0.0:.2f}s)")

        def _forward(value: float):
            if on_progress:
                on_progress(band.map(value), status)

        monitor = ProgressMonitor(job.progress_path, job.source.duration or 0.0, self.poll_interval, on_progress=_forward)
        try:
            with monitor:
                result = self.ffmpeg_adapter.run(cmd, shutdown_event)
        except OSError as e:
            raise NormalizationError(f"Could not launch ffmpeg for {name}: {e}", path=job.source.path) from e

        if result.cancelled:
            raise PipelineCancelled(f"Cancelled while normalizing {name}", path=job.source.path)
        if not result.ok:
            self.logger.error(f"NORMALIZE_FAILED: {name} {result.describe()}")
            raise NormalizationError(f"Normalizing {name} failed: {result.describe()}", path=job.source.path)
        if not job.target_path.exists():
            raise NormalizationError(f"Normalizing {name} produced no output", path=job.source.path)

        if on_progress:
            on_progress(band.end, status)
        self.logger.info(f"NORMALIZE_END: {name}")
