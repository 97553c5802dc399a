import logging
import subprocess
from pathlib import Path
from typing import List
from vidmerge.domain.errors import ProbeError
from vidmerge.domain.models import MediaFile
from vidmerge.infrastructure.ffprobe import FFprobeAdapter


class MediaProbe:
    """Duration lookup with an explicit failure policy.

    policy="degrade": any probe failure yields 0.0 seconds so progress weighting
    degrades instead of aborting the run. policy="fail": raises ProbeError.
    """

    def __init__(self, ffprobe_adapter: FFprobeAdapter, policy: str = "degrade"):
        self.ffprobe_adapter = ffprobe_adapter
        self.policy = policy
        self.logger = logging.getLogger(__name__)

    def duration(self, path: Path) -> float:
        try:
            return self.ffprobe_adapter.get_duration(path)
        except (RuntimeError, ValueError, OSError, subprocess.SubprocessError) as e:
            if self.policy == "fail":
                raise ProbeError(f"Could not read duration of {path.name}: {e}", path=path) from e
            self.logger.warning(f"PROBE_DEGRADED: {path.name} duration=0 ({e})")
            return 0.0

    def probe(self, media_file: MediaFile) -> MediaFile:
        if media_file.is_probed:
            return media_file
        return media_file.with_duration(self.duration(media_file.path))

    def probe_all(self, files: List[MediaFile]) -> List[MediaFile]:
        return [self.probe(f) for f in files]
