import shutil
from typing import Dict, Optional
from vidmerge.config.models import ToolsConfig
from vidmerge.domain.errors import ToolMissingError

INSTALL_HINT = (
    "Install FFmpeg (https://ffmpeg.org/download.html, e.g. 'brew install ffmpeg' "
    "or 'sudo apt install ffmpeg') or point tools.{name} in the config at the executable."
)


def find_tool(executable: str) -> Optional[str]:
    """Resolves a tool name or path to an executable path, or None."""
    return shutil.which(executable)


def ensure_tools(tools: ToolsConfig) -> Dict[str, str]:
    """Checks that ffmpeg and ffprobe are runnable before a pipeline starts.

    Returns the resolved executable paths keyed by tool name.
    """
    resolved: Dict[str, str] = {}
    for name, executable in (("ffmpeg", tools.ffmpeg), ("ffprobe", tools.ffprobe)):
        found = find_tool(executable)
        if not found:
            raise ToolMissingError(f"{name} not found ({executable}). " + INSTALL_HINT.format(name=name))
        resolved[name] = found
    return resolved
