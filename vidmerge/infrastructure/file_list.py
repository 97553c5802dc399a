from pathlib import Path
from typing import Iterable

DEFAULT_FILE_LIST_NAME = "imported_files.txt"

def format_file_list(paths: Iterable[Path]) -> str:
    """One file name per line, in import order."""
    return "\n".join(Path(p).name for p in paths)

def write_file_list(paths: Iterable[Path], destination: Path) -> Path:
    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_text(format_file_list(paths), encoding="utf-8")
    return destination
