from typing import Optional
from rich.console import Console
from rich.progress import BarColumn, Progress, TaskID, TextColumn, TimeElapsedColumn
from vidmerge.domain.events import FileNormalized, StageChanged
from vidmerge.domain.models import PipelineResult, PipelineStage, ProgressReport
from vidmerge.infrastructure.event_bus import EventBus


class ConsoleReporter:
    """Terminal front-end for one merge run.

    Progress and the terminal result arrive through the coordinator callbacks
    (already marshalled onto the main thread by the CLI); per-file and stage
    notices come from the EventBus.
    """

    def __init__(self, bus: EventBus, console: Optional[Console] = None):
        self.bus = bus
        self.console = console or Console()
        self.progress = Progress(
            TextColumn("[bold]{task.fields[stage]:<11}"),
            BarColumn(),
            TextColumn("{task.percentage:>5.1f}%"),
            TimeElapsedColumn(),
            TextColumn("{task.description}"),
            console=self.console,
        )
        self._task: Optional[TaskID] = None
        self.last_report: Optional[ProgressReport] = None
        self.result: Optional[PipelineResult] = None
        self._setup_subscriptions()

    def _setup_subscriptions(self):
        self.bus.subscribe(StageChanged, self.on_stage_changed)
        self.bus.subscribe(FileNormalized, self.on_file_normalized)

    def on_stage_changed(self, event: StageChanged):
        if event.stage == PipelineStage.MERGING:
            self.console.log("All inputs normalized, concatenating")

    def on_file_normalized(self, event: FileNormalized):
        self.console.log(f"✓ {event.source.name}")

    def on_progress(self, report: ProgressReport):
        self.last_report = report
        if self._task is None:
            return
        self.progress.update(
            self._task,
            completed=report.percent,
            description=report.status,
            stage=report.stage.value.lower(),
        )

    def on_result(self, result: PipelineResult):
        self.result = result
        if result.success:
            self.console.print(f"[green]✓ Merged into {result.output_path}[/green]")
            for path in result.intermediates:
                self.console.print(f"  intermediate kept: {path}")
        else:
            kind = result.error_kind.value if result.error_kind else "UNKNOWN"
            self.console.print(f"[red]✗ Merge failed ({kind}): {result.reason}[/red]")

    def start(self):
        self.progress.start()
        self._task = self.progress.add_task("Starting", total=100.0, stage="idle")
        return self

    def stop(self):
        self.progress.stop()
        self.bus.unsubscribe(StageChanged, self.on_stage_changed)
        self.bus.unsubscribe(FileNormalized, self.on_file_normalized)

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False
