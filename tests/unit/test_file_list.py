from pathlib import Path
from vidmerge.infrastructure.file_list import format_file_list, write_file_list

def test_format_file_list_uses_names_in_order():
    paths = [Path("/videos/b.mov"), Path("/other/a.mp4")]
    assert format_file_list(paths) == "b.mov\na.mp4"

def test_write_file_list_creates_parent(tmp_path):
    dest = tmp_path / "exports" / "imported_files.txt"
    write_file_list([Path("x/1.mp4"), Path("y/2.mp4")], dest)

    assert dest.read_text(encoding="utf-8") == "1.mp4\n2.mp4"
