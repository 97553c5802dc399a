import pytest
from pathlib import Path
from unittest.mock import patch
from vidmerge.infrastructure.housekeeping import HousekeepingService, WORKSPACE_PREFIX

def test_create_workspace_under_base_dir(tmp_path):
    service = HousekeepingService(tmp_path / "scratch")

    first = service.create_workspace()
    second = service.create_workspace()

    assert first.is_dir() and second.is_dir()
    assert first != second
    assert first.parent == tmp_path / "scratch"
    assert first.name.startswith(WORKSPACE_PREFIX)

def test_cleanup_workspace_removes_everything(tmp_path):
    service = HousekeepingService(tmp_path)
    workspace = service.create_workspace()
    (workspace / "normalized_000.mp4").write_text("data")
    (workspace / "concat_list.txt").write_text("file 'x'")

    service.cleanup_workspace(workspace)

    assert not workspace.exists()

def test_cleanup_workspace_missing_is_noop(tmp_path):
    HousekeepingService().cleanup_workspace(tmp_path / "gone")

def test_remove_files_ignores_missing(tmp_path):
    kept = tmp_path / "keep.mp4"
    kept.write_text("data")
    doomed = tmp_path / "normalized_000.mp4"
    doomed.write_text("data")

    HousekeepingService().remove_files([doomed, tmp_path / "never_written.mp4"])

    assert not doomed.exists()
    assert kept.exists()

def test_remove_files_handles_oserror(tmp_path):
    f = tmp_path / "protected.mp4"
    f.write_text("data")

    service = HousekeepingService()
    with patch.object(Path, 'unlink', side_effect=OSError("Permission denied")):
        # Should not raise exception
        service.remove_files([f])
        assert f.exists()
