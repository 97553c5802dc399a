import logging
import shutil
import tempfile
from pathlib import Path
from typing import Iterable, Optional

WORKSPACE_PREFIX = "vidmerge-"

class HousekeepingService:
    """Service for the per-run scratch workspace and its intermediates."""

    def __init__(self, base_dir: Optional[Path] = None):
        self.base_dir = Path(base_dir) if base_dir else None
        self.logger = logging.getLogger(__name__)

    def create_workspace(self) -> Path:
        """Creates a fresh scratch directory for one run."""
        if self.base_dir is not None:
            self.base_dir.mkdir(parents=True, exist_ok=True)
        return Path(tempfile.mkdtemp(prefix=WORKSPACE_PREFIX, dir=self.base_dir))

    def remove_files(self, paths: Iterable[Path]):
        """Removes intermediate files, ignoring ones that are already gone."""
        for path in paths:
            try:
                Path(path).unlink()
            except FileNotFoundError:
                pass
            except OSError as e:
                self.logger.warning(f"Could not remove {path}: {e}")

    def cleanup_workspace(self, workspace: Path):
        """Recursively removes a run workspace."""
        if not workspace.exists():
            return
        try:
            shutil.rmtree(workspace)
        except OSError as e:
            self.logger.warning(f"Could not remove workspace {workspace}: {e}")
