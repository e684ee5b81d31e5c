# whisperq/workers/live.py
from pathlib import Path

from PySide6.QtCore import QObject, QThread, Signal

from ..errors import LiveSessionError
from ..parsers.whisper_output import FragmentFilter
from ..utils.logging_utils import get_logger

log = get_logger(__name__)

STEP_MS = 500
LENGTH_MS = 5000
STOP_TIMEOUT_MS = 1500


def live_args(model_path: Path, language: str, cpu_only: bool,
              step_ms: int = STEP_MS, length_ms: int = LENGTH_MS, threads: int | None = None) -> list[str]:
    args = [
        "-m", str(model_path),
        "-l", language,
        "--step", str(step_ms),
        "--length", str(length_ms),
        "-t", str(threads or max(1, QThread.idealThreadCount())),
    ]
    if cpu_only:
        args.append("--no-gpu")
    return args


class LiveSession(QObject):
    """Continuous transcription from whisper-stream, independent of the job queue."""

    text = Signal(str)
    log_line = Signal(str)
    started = Signal()
    ended = Signal()

    def __init__(self, stage_runner, executable: str = "whisper-stream",
                 stop_timeout_ms: int = STOP_TIMEOUT_MS, parent: QObject | None = None):
        super().__init__(parent)
        self.stage_runner = stage_runner
        self.executable = executable
        self.stop_timeout_ms = stop_timeout_ms
        self.filter = FragmentFilter()
        self._process = None

    @property
    def is_running(self) -> bool:
        return self._process is not None

    @property
    def state(self) -> str:
        return "Running" if self.is_running else "Idle"

    def start(self, model_path: Path, language: str, cpu_only: bool) -> bool:
        if self.is_running:
            return False
        model_path = Path(model_path)
        if not model_path.exists():
            raise LiveSessionError(f"Model file not found: {model_path}")

        self.filter.reset()
        log.info("Starting live transcription with %s", model_path.name)
        self.log_line.emit("Starting live transcription.")
        proc = self.stage_runner.run(
            self.executable, live_args(model_path, language, cpu_only),
            self._on_output, self._on_complete,
        )
        if proc.is_finished:
            return False
        self._process = proc
        self.started.emit()
        return True

    def stop(self) -> None:
        proc = self._process
        if proc is None:
            return
        self.log_line.emit("Stopping live transcription.")
        proc.terminate()
        if not proc.wait_for_finished(self.stop_timeout_ms):
            log.warning("whisper-stream ignored terminate, killing it")
            proc.kill()

    def feed(self, chunk: str) -> str | None:
        line = self.filter.feed(chunk)
        if line is not None:
            self.text.emit(line)
        return line

    def _on_output(self, chunk: str) -> None:
        self.feed(chunk)

    def _on_complete(self, exit_code: int, crashed: bool) -> None:
        self._process = None
        if crashed or exit_code != 0:
            log.info("Live transcription ended (exit code %d, crashed=%s)", exit_code, crashed)
        self.log_line.emit("Live transcription stopped.")
        self.ended.emit()
