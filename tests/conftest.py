import pytest
import threading
import yaml
from pathlib import Path
from typing import Dict, Iterable, List, Optional
from vidmerge.config.models import AppConfig
from vidmerge.infrastructure.event_bus import EventBus
from vidmerge.infrastructure.ffmpeg import FFmpegAdapter, TranscodeResult
from vidmerge.infrastructure.ffprobe import FFprobeAdapter

# ============================================================================
# Fake external tools
# ============================================================================

class FakeFFprobe(FFprobeAdapter):
    """Returns durations from a name -> seconds map; unknown names fail like ffprobe."""

    def __init__(self, durations: Dict[str, float]):
        super().__init__("ffprobe")
        self.durations = durations
        self.calls: List[Path] = []

    def get_duration(self, file_path: Path) -> float:
        self.calls.append(Path(file_path))
        name = Path(file_path).name
        if name not in self.durations:
            raise RuntimeError(f"ffprobe failed for {file_path}: Invalid data found")
        return self.durations[name]


class FakeFFmpeg(FFmpegAdapter):
    """Pretends to be ffmpeg: writes progress markers and the output file.

    fail_on: input names whose normalization exits with code 1.
    fail_merge: concat run exits with code 1.
    gate: if given, every run blocks until the event is set.
    """

    def __init__(
        self,
        durations: Optional[Dict[str, float]] = None,
        fail_on: Iterable[str] = (),
        fail_merge: bool = False,
        gate: Optional[threading.Event] = None,
        on_run=None,
    ):
        super().__init__("ffmpeg")
        self.durations = durations or {}
        self.fail_on = set(fail_on)
        self.fail_merge = fail_merge
        self.gate = gate
        self.on_run = on_run
        self.commands: List[List[str]] = []

    @property
    def normalize_commands(self) -> List[List[str]]:
        return [c for c in self.commands if "concat" not in c]

    @property
    def merge_commands(self) -> List[List[str]]:
        return [c for c in self.commands if "concat" in c]

    def run(self, cmd, shutdown_event=None) -> TranscodeResult:
        self.commands.append(list(cmd))
        if self.on_run:
            self.on_run(cmd)
        if self.gate is not None:
            self.gate.wait(5)
        if shutdown_event is not None and shutdown_event.is_set():
            return TranscodeResult(cancelled=True)

        progress_path = Path(cmd[cmd.index("-progress") + 1])
        output_path = Path(cmd[-1])
        if "concat" in cmd:
            failed = self.fail_merge
            seconds = sum(self.durations.values())
        else:
            source = Path(cmd[cmd.index("-i") + 1])
            failed = source.name in self.fail_on
            seconds = self.durations.get(source.name, 0.0)

        if failed:
            output_path.write_bytes(b"partial")
            return TranscodeResult(returncode=1, stderr_tail=["Invalid data found when processing input"])

        progress_path.write_text(
            "out_time_ms=N/A\nprogress=continue\n"
            f"out_time_ms={int(seconds * 1_000_000)}\nprogress=end\n"
        )
        output_path.write_bytes(b"video")
        return TranscodeResult(returncode=0)

# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def sample_config(tmp_path):
    """Returns an AppConfig with a fast poll interval and a test workspace."""
    return AppConfig(
        general={"debug": False},
        pipeline={
            "normalize_weight": 0.8,
            "poll_interval_s": 0.01,
            "probe_failure_policy": "degrade",
            "keep_intermediates": False,
            "workspace_dir": str(tmp_path / "work"),
        },
    )

@pytest.fixture
def config_yaml_path(tmp_path):
    """Creates a temporary YAML config file."""
    conf_dir = tmp_path / "conf"
    conf_dir.mkdir()
    conf_file = conf_dir / "vidmerge.yaml"

    content = {
        'general': {'debug': True},
        'tools': {'ffmpeg': '/opt/ffmpeg/bin/ffmpeg', 'ffprobe': '/opt/ffmpeg/bin/ffprobe'},
        'profile': {'width': 1280, 'height': 720, 'fps': 25},
        'pipeline': {'normalize_weight': 0.7, 'probe_failure_policy': 'fail'},
    }

    with open(conf_file, 'w') as f:
        yaml.dump(content, f)

    return conf_file

# ============================================================================
# EventBus Fixtures
# ============================================================================

@pytest.fixture
def event_bus():
    """Returns a fresh EventBus instance."""
    return EventBus()

# ============================================================================
# Media Fixtures
# ============================================================================

@pytest.fixture
def make_inputs(tmp_path):
    """Creates dummy input files and returns their paths in order."""
    def _make(names: Iterable[str]) -> List[Path]:
        src = tmp_path / "src"
        src.mkdir(exist_ok=True)
        paths = []
        for name in names:
            path = src / name
            path.write_bytes(b"\x00" * 16)
            paths.append(path)
        return paths
    return _make

@pytest.fixture
def fake_ffprobe():
    return FakeFFprobe

@pytest.fixture
def fake_ffmpeg():
    return FakeFFmpeg
