"""Polling of ffmpeg's `-progress` side channel.

ffmpeg rewrites the progress file periodically with `key=value` blocks; the
`out_time_ms` key holds the elapsed output time in microseconds.
"""

import logging
import threading
from pathlib import Path
from typing import Callable, Iterator, Optional

OUT_TIME_KEY = "out_time_ms"


def parse_out_time(text: str) -> Optional[float]:
    """Returns elapsed seconds from the last valid `out_time_ms=` line, or None."""
    elapsed = None
    for line in text.splitlines():
        key, sep, value = line.strip().partition("=")
        if not sep or key != OUT_TIME_KEY:
            continue
        try:
            elapsed = int(value.strip()) / 1_000_000
        except ValueError:
            continue  # N/A before the first frame
    return elapsed


def fraction(elapsed: float, total: float) -> float:
    if total <= 0:
        return 0.0
    return max(0.0, min(1.0, elapsed / total))


class ProgressBand:
    """Maps a stage-local fraction into [start, end] of the overall run."""

    def __init__(self, start: float, end: float):
        if not 0.0 <= start <= end <= 1.0:
            raise ValueError(f"Invalid progress band [{start}, {end}]")
        self.start = start
        self.end = end

    def map(self, value: float) -> float:
        value = max(0.0, min(1.0, value))
        return min(self.end, self.start + (self.end - self.start) * value)

    def __repr__(self) -> str:
        return f"ProgressBand({self.start:.3f}, {self.end:.3f})"


class ProgressMonitor:
    """Polls a progress file on a fixed interval and reports fractional progress.

    Reported values never decrease. The monitor does not stop on its own: the
    owner calls stop() (or leaves the `with` block) once the subprocess exited.
    """

    def __init__(
        self,
        progress_path: Path,
        total_duration: float,
        interval: float = 1.0,
        on_progress: Optional[Callable[[float], None]] = None,
    ):
        self.progress_path = Path(progress_path)
        self.total_duration = total_duration
        self.interval = interval
        self.on_progress = on_progress
        self.logger = logging.getLogger(__name__)
        self._max = 0.0
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def _read(self) -> Optional[str]:
        try:
            return self.progress_path.read_text(errors="replace")
        except OSError:
            return None

    def poll(self) -> float:
        text = self._read()
        with self._lock:
            if text:
                elapsed = parse_out_time(text)
                if elapsed is not None:
                    self._max = max(self._max, fraction(elapsed, self.total_duration))
            return self._max

    def values(self, stop_event: Optional[threading.Event] = None) -> Iterator[float]:
        """Yields one polled value per interval until stop_event is set."""
        stop_event = stop_event or self._stop_event
        while not stop_event.wait(self.interval):
            yield self.poll()

    def _emit(self, value: float):
        if self.on_progress:
            self.on_progress(value)

    def _run(self):
        for value in self.values(self._stop_event):
            self._emit(value)

    def start(self):
        if self._thread is not None:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="progress-monitor", daemon=True)
        self._thread.start()

    def stop(self) -> float:
        """Stops polling and reports one final value read after the process exited."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        final = self.poll()
        self._emit(final)
        self.logger.debug(f"PROGRESS_END: {self.progress_path.name} value={final:.3f}")
        return final

    def __enter__(self) -> "ProgressMonitor":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
        return False
