# whisperq/utils/viewer.py
import sys
from pathlib import Path

from PySide6.QtCore import QProcess

from .logging_utils import get_logger

log = get_logger(__name__)


def viewer_command(path: Path) -> tuple[str, list[str]]:
    if sys.platform.startswith("win"):
        return "notepad.exe", [str(path)]
    if sys.platform == "darwin":
        return "open", ["-t", str(path)]
    return "xdg-open", [str(path)]


def open_in_viewer(path: Path) -> None:
    """Fire-and-forget: show a transcript in the platform text viewer."""
    if not Path(path).exists():
        log.warning("Transcript not found, not opening: %s", path)
        return
    program, args = viewer_command(Path(path))
    ok = QProcess.startDetached(program, args)
    # PySide6 returns (bool, pid) for the overload that reports the pid
    if isinstance(ok, tuple):
        ok = ok[0]
    if not ok:
        log.warning("Could not launch viewer %s for %s", program, path)
