import typer
import queue
import threading
from pathlib import Path
from typing import Callable, List, Optional
from pydantic import ValidationError

from vidmerge.config.loader import DEFAULT_CONFIG_PATH, load_config_or_default
from vidmerge.config.models import AppConfig, PipelineConfig
from vidmerge.infrastructure.logging import setup_logging
from vidmerge.infrastructure.event_bus import EventBus
from vidmerge.infrastructure.file_list import DEFAULT_FILE_LIST_NAME, write_file_list
from vidmerge.pipeline.coordinator import PipelineCoordinator
from vidmerge.domain.models import FailureKind
from vidmerge.ui.console import ConsoleReporter

app = typer.Typer(help="vidmerge - normalize and concatenate video files with ffmpeg")


def apply_overrides(
    config: AppConfig,
    ffmpeg: Optional[str] = None,
    ffprobe: Optional[str] = None,
    strict_probe: bool = False,
    keep_intermediates: bool = False,
    normalize_weight: Optional[float] = None,
    log_path: Optional[Path] = None,
    debug: bool = False,
) -> AppConfig:
    """Applies CLI flags on top of the loaded config (re-validating the pipeline section)."""
    if ffmpeg: config.tools.ffmpeg = ffmpeg
    if ffprobe: config.tools.ffprobe = ffprobe
    if log_path is not None: config.general.log_path = str(log_path)
    if debug: config.general.debug = True

    pipeline = config.pipeline.model_dump()
    if strict_probe: pipeline["probe_failure_policy"] = "fail"
    if keep_intermediates: pipeline["keep_intermediates"] = True
    if normalize_weight is not None: pipeline["normalize_weight"] = normalize_weight
    config.pipeline = PipelineConfig(**pipeline)
    return config


def _pump(calls: "queue.Queue[Callable[[], None]]", done: threading.Event):
    """Runs callbacks marshalled from the pipeline thread until the result arrived."""
    while not done.is_set():
        try:
            callback = calls.get(timeout=0.2)
        except queue.Empty:
            continue
        callback()


@app.command()
def merge(
    inputs: List[Path] = typer.Argument(..., help="Video files to merge, in order"),
    output: Path = typer.Option(..., "--output", "-o", help="Path of the merged video"),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help=f"Path to YAML config (default: {DEFAULT_CONFIG_PATH} if present)"
    ),
    ffmpeg: Optional[str] = typer.Option(None, "--ffmpeg", help="ffmpeg executable (overrides config)"),
    ffprobe: Optional[str] = typer.Option(None, "--ffprobe", help="ffprobe executable (overrides config)"),
    strict_probe: bool = typer.Option(False, "--strict-probe", help="Fail when a duration cannot be probed"),
    keep_intermediates: bool = typer.Option(False, "--keep-intermediates", help="Keep normalized files"),
    normalize_weight: Optional[float] = typer.Option(
        None, "--normalize-weight", help="Share of the progress bar given to normalization (0-1)"
    ),
    log_path: Optional[Path] = typer.Option(None, "--log-path", help="Path to log file (overrides config)"),
    debug: bool = typer.Option(False, "--debug/--no-debug", help="Enable verbose debug logging"),
):
    """Normalize INPUTS to a common profile and concatenate them into OUTPUT."""
    try:
        config = load_config_or_default(config_path or DEFAULT_CONFIG_PATH, explicit=config_path is not None)
        config = apply_overrides(
            config,
            ffmpeg=ffmpeg,
            ffprobe=ffprobe,
            strict_probe=strict_probe,
            keep_intermediates=keep_intermediates,
            normalize_weight=normalize_weight,
            log_path=log_path,
            debug=debug,
        )
    except (FileNotFoundError, ValueError, ValidationError) as exc:
        typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    try:
        log_path_value = Path(config.general.log_path) if config.general.log_path else None
        logger = setup_logging(output.parent, debug=config.general.debug, log_path=log_path_value)
        logger.info(f"vidmerge started: inputs={len(inputs)} output={output}")

        bus = EventBus()
        calls: "queue.Queue[Callable[[], None]]" = queue.Queue()
        done = threading.Event()
        coordinator = PipelineCoordinator(config, bus, dispatch=calls.put)
        reporter = ConsoleReporter(bus)

        def _on_result(result):
            reporter.on_result(result)
            done.set()

        with reporter:
            coordinator.start(inputs, output, on_progress=reporter.on_progress, on_result=_on_result)
            try:
                _pump(calls, done)
            except KeyboardInterrupt:
                coordinator.cancel()
                _pump(calls, done)
                raise

        result = reporter.result
        if result is None or not result.success:
            code = 2 if result is not None and result.error_kind == FailureKind.PRECONDITION else 1
            raise typer.Exit(code=code)

    except KeyboardInterrupt:
        typer.secho("\n✓ Merge stopped by user (Ctrl+C)", fg=typer.colors.YELLOW)
        raise typer.Exit(code=130)

    except typer.Exit:
        raise

    except Exception as e:
        with open("error.log", "a") as f:
            import traceback
            traceback.print_exc(file=f)
        typer.secho(f"Fatal Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


@app.command("list-files")
def list_files(
    inputs: List[Path] = typer.Argument(..., help="Imported video files"),
    output: Path = typer.Option(Path(DEFAULT_FILE_LIST_NAME), "--output", "-o", help="Text file to write"),
):
    """Export the names of the imported files, one per line."""
    if not inputs:
        typer.secho("Error: No files to export.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    write_file_list(inputs, output)
    typer.secho(f"Exported {len(inputs)} file names to {output}", fg=typer.colors.GREEN)


if __name__ == "__main__":
    app()
