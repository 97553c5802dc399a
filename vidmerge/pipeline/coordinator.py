"""Pipeline coordinator for the merge run lifecycle.

Sequences probe → normalize → merge for one request and turns every outcome
into exactly one PipelineResult. Publishes events on the EventBus so UI
layers can follow the run without the pipeline knowing about them.

Key responsibilities:
- Entry guard (at least two existing inputs, destination not an input)
- Proactive ffmpeg/ffprobe discovery
- Aggregating both stage bands into one monotonic 0..1 progress value
- Single active run per coordinator; re-entry raises PipelineBusyError
- Cancellation via a threading.Event checked at every stage boundary
- Scratch workspace creation and removal
"""

import logging
import threading
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union
from vidmerge.config.models import AppConfig, ToolsConfig
from vidmerge.domain.errors import (
    PipelineBusyError,
    PipelineCancelled,
    PipelineError,
    PreconditionError,
)
from vidmerge.domain.events import (
    PipelineCompleted,
    PipelineFailed,
    PipelineStarted,
    ProgressUpdated,
    StageChanged,
)
from vidmerge.domain.models import (
    FailureKind,
    MediaFile,
    MergePlan,
    PipelineResult,
    PipelineStage,
    ProgressReport,
)
from vidmerge.infrastructure.event_bus import EventBus
from vidmerge.infrastructure.ffmpeg import FFmpegAdapter
from vidmerge.infrastructure.ffprobe import FFprobeAdapter
from vidmerge.infrastructure.housekeeping import HousekeepingService
from vidmerge.infrastructure.progress import ProgressBand
from vidmerge.infrastructure.tools import ensure_tools
from vidmerge.pipeline.merger import Merger
from vidmerge.pipeline.normalizer import Normalizer
from vidmerge.pipeline.probe import MediaProbe

MIN_INPUTS = 2

ProgressListener = Callable[[ProgressReport], None]
ResultListener = Callable[[PipelineResult], None]
Dispatcher = Callable[[Callable[[], None]], None]
PathLike = Union[str, Path]


def _call_inline(fn: Callable[[], None]):
    fn()


class PipelineCoordinator:
    """Owns the merge state machine IDLE → PROBING → NORMALIZING → MERGING → DONE.

    Callbacks handed to run()/start() are invoked through `dispatch`, which a
    caller can replace to marshal them onto its own thread (for example by
    putting the callable on a queue its main loop drains).

    Args:
        config: AppConfig with tools, profile and pipeline settings.
        event_bus: EventBus for publishing run lifecycle events.
        ffprobe_adapter: Duration probing (defaults to config.tools.ffprobe).
        ffmpeg_adapter: Transcode execution (defaults to config.tools.ffmpeg).
        housekeeping: Workspace handling (defaults to config.pipeline.workspace_dir).
        dispatch: Callback marshaller; defaults to calling inline.
        tool_checker: Callable raising ToolMissingError for missing tools.
    """

    def __init__(
        self,
        config: AppConfig,
        event_bus: EventBus,
        ffprobe_adapter: Optional[FFprobeAdapter] = None,
        ffmpeg_adapter: Optional[FFmpegAdapter] = None,
        housekeeping: Optional[HousekeepingService] = None,
        dispatch: Optional[Dispatcher] = None,
        tool_checker: Callable[[ToolsConfig], object] = ensure_tools,
    ):
        self.config = config
        self.event_bus = event_bus
        self.ffprobe_adapter = ffprobe_adapter or FFprobeAdapter(config.tools.ffprobe)
        self.ffmpeg_adapter = ffmpeg_adapter or FFmpegAdapter(config.tools.ffmpeg)
        workspace_dir = Path(config.pipeline.workspace_dir) if config.pipeline.workspace_dir else None
        self.housekeeping = housekeeping or HousekeepingService(workspace_dir)
        self.dispatch = dispatch or _call_inline
        self.tool_checker = tool_checker
        self.logger = logging.getLogger(__name__)

        weight = config.pipeline.normalize_weight
        interval = config.pipeline.poll_interval_s
        self.probe = MediaProbe(self.ffprobe_adapter, policy=config.pipeline.probe_failure_policy)
        self.normalizer = Normalizer(
            self.ffmpeg_adapter,
            config.profile,
            event_bus=event_bus,
            housekeeping=self.housekeeping,
            normalize_weight=weight,
            poll_interval=interval,
        )
        self.merger = Merger(
            self.ffmpeg_adapter,
            housekeeping=self.housekeeping,
            band=ProgressBand(weight, 1.0),
            poll_interval=interval,
        )

        self._state_lock = threading.Lock()
        self._progress_lock = threading.Lock()
        self._active = False
        self._stage = PipelineStage.IDLE
        self._last_progress = 0.0
        self._shutdown_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def stage(self) -> PipelineStage:
        return self._stage

    @property
    def is_active(self) -> bool:
        with self._state_lock:
            return self._active

    def _acquire(self):
        with self._state_lock:
            if self._active:
                raise PipelineBusyError("A merge is already running")
            self._active = True
            self._stage = PipelineStage.IDLE
            self._last_progress = 0.0
            self._shutdown_event = threading.Event()

    def _release(self):
        with self._state_lock:
            self._active = False

    def cancel(self):
        """Requests cancellation of the active run (no-op when idle)."""
        if self.is_active:
            self.logger.info("Cancel requested - stopping merge run...")
            self._shutdown_event.set()

    def run(
        self,
        inputs: Sequence[PathLike],
        destination: PathLike,
        on_progress: Optional[ProgressListener] = None,
    ) -> PipelineResult:
        """Executes one merge run on the calling thread."""
        self._acquire()
        try:
            return self._execute(inputs, destination, on_progress)
        finally:
            self._release()

    def start(
        self,
        inputs: Sequence[PathLike],
        destination: PathLike,
        on_progress: Optional[ProgressListener] = None,
        on_result: Optional[ResultListener] = None,
    ) -> threading.Thread:
        """Executes one merge run on a dedicated background thread."""
        self._acquire()

        def _worker():
            result = None
            try:
                result = self._execute(inputs, destination, on_progress)
            except Exception as e:
                self.logger.exception(f"Merge run aborted: {e}")
                result = PipelineResult.failed(FailureKind.INTERNAL, f"Unexpected error: {e}")
            finally:
                self._release()
                if on_result and result is not None:
                    self.dispatch(lambda: on_result(result))

        thread = threading.Thread(target=_worker, name="vidmerge-pipeline", daemon=True)
        self._thread = thread
        thread.start()
        return thread

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Joins the background run started by start(); True once it finished."""
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def _set_stage(self, stage: PipelineStage):
        self._stage = stage
        self.logger.info(f"STAGE: {stage.value}")
        self.event_bus.publish(StageChanged(stage=stage))

    def _report(self, value: float, status: str, on_progress: Optional[ProgressListener]):
        with self._progress_lock:
            value = max(0.0, min(1.0, value))
            self._last_progress = max(self._last_progress, value)
            report = ProgressReport(stage=self._stage, progress=self._last_progress, status=status)
        self.event_bus.publish(ProgressUpdated(report=report))
        if on_progress:
            self.dispatch(lambda: on_progress(report))

    def _check_cancel(self):
        if self._shutdown_event.is_set():
            raise PipelineCancelled("Merge cancelled")

    def _check_preconditions(self, inputs: List[Path], destination: Path):
        if len(inputs) < MIN_INPUTS:
            raise PreconditionError(f"At least {MIN_INPUTS} input files are required, got {len(inputs)}")
        for path in inputs:
            if not path.is_file():
                raise PreconditionError(f"Input file not found: {path}", path=path)
        resolved_destination = destination.resolve()
        for path in inputs:
            if path.resolve() == resolved_destination:
                raise PreconditionError(f"Destination is one of the inputs: {destination}", path=destination)

    def _execute(
        self,
        inputs: Sequence[PathLike],
        destination: PathLike,
        on_progress: Optional[ProgressListener],
    ) -> PipelineResult:
        input_paths = [Path(p) for p in inputs]
        destination = Path(destination)
        workspace: Optional[Path] = None
        result: Optional[PipelineResult] = None
        keep = self.config.pipeline.keep_intermediates

        def _stage_progress(value: float, status: str):
            self._report(value, status, on_progress)

        try:
            self._check_preconditions(input_paths, destination)
            self.tool_checker(self.config.tools)
            self.logger.info(f"Merge started: {len(input_paths)} files -> {destination}")
            self.event_bus.publish(PipelineStarted(inputs=input_paths, destination=destination))

            self._set_stage(PipelineStage.PROBING)
            self._report(0.0, "Probing durations", on_progress)
            files = self.probe.probe_all([MediaFile(path=p) for p in input_paths])
            total_duration = sum(f.duration or 0.0 for f in files)
            unknown = [f.path.name for f in files if not f.duration]
            if unknown:
                self.logger.warning(f"Unknown duration for {len(unknown)} file(s): {', '.join(unknown)}")
            self.logger.info(f"Total duration: {total_duration:.2f}s")
            self._check_cancel()

            workspace = self.housekeeping.create_workspace()
            self.logger.debug(f"Workspace: {workspace}")

            self._set_stage(PipelineStage.NORMALIZING)
            normalized = self.normalizer.normalize(
                files, workspace, on_progress=_stage_progress, shutdown_event=self._shutdown_event
            )
            self._check_cancel()

            plan = MergePlan(normalized_paths=normalized, destination=destination, source_count=len(files))
            self._set_stage(PipelineStage.MERGING)
            output_path = self.merger.merge(
                plan, workspace, total_duration, on_progress=_stage_progress, shutdown_event=self._shutdown_event
            )

            result = PipelineResult.ok(output_path, intermediates=normalized if keep else [])
            self._set_stage(PipelineStage.DONE)
            self._report(1.0, "Done", on_progress)
        except PipelineError as e:
            self.logger.error(f"Merge failed ({e.kind.value}): {e}")
            result = PipelineResult.failed(e.kind, str(e), failed_path=e.path)
            self._set_stage(PipelineStage.DONE)
        except Exception as e:
            self.logger.exception(f"Unexpected error during merge: {e}")
            result = PipelineResult.failed(FailureKind.INTERNAL, f"Unexpected error: {e}")
            self._set_stage(PipelineStage.DONE)
        finally:
            if workspace is not None and not (keep and result is not None and result.success):
                self.housekeeping.cleanup_workspace(workspace)

        if result.success:
            self.logger.info(f"Merge completed: {result.output_path}")
        terminal_event = PipelineCompleted(result=result) if result.success else PipelineFailed(result=result)
        try:
            self.event_bus.publish(terminal_event)
        except Exception as e:
            self.logger.exception(f"Subscriber failed on {type(terminal_event).__name__}: {e}")
        return result
