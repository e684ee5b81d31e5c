# whisperq/utils/logging_utils.py
import logging
import os
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
ROOT = "whisperq"

_configured = False


def setup_logging(level: str | None = None, log_file: Path | None = None) -> logging.Logger:
    """Configure the ``whisperq`` logger tree once.

    Level comes from ``level``, then the LOG_LEVEL env var, then INFO. Records
    go to stderr and, when ``log_file`` is given, are appended to that file
    as well. Later calls only add a file handler that is not there yet.
    """
    global _configured
    root = logging.getLogger(ROOT)
    if not _configured:
        name = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
        root.setLevel(getattr(logging, name, logging.INFO))
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(console)
        root.propagate = False
        _configured = True

    if log_file is not None:
        log_file = Path(log_file).resolve()
        known = {getattr(h, "baseFilename", None) for h in root.handlers}
        if str(log_file) not in known:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            fh = logging.FileHandler(log_file, encoding="utf-8")
            fh.setFormatter(logging.Formatter(LOG_FORMAT))
            root.addHandler(fh)
    return root


def get_logger(name: str) -> logging.Logger:
    # Module names already live under "whisperq."; anything else is nested there
    if name != ROOT and not name.startswith(ROOT + "."):
        name = f"{ROOT}.{name}"
    return logging.getLogger(name)
