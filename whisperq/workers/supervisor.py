# whisperq/workers/supervisor.py
from PySide6.QtCore import QObject, QTimer, Signal

from ..utils.logging_utils import get_logger

log = get_logger(__name__)

DEFAULT_GRACE_MS = 1500


class ProcessSupervisor(QObject):
    """Registry of running external processes with bulk termination.

    Holds a process only between register() and unregister(); it never
    deletes one. terminate_all() asks every process to exit and kills the
    ones still running once the grace window elapses, without blocking.
    """

    terminating = Signal(int)  # number of processes asked to stop

    def __init__(self, grace_ms: int = DEFAULT_GRACE_MS, parent: QObject | None = None):
        super().__init__(parent)
        self.grace_ms = grace_ms
        self._procs: list = []

    def __len__(self) -> int:
        return len(self._procs)

    def __contains__(self, proc) -> bool:
        return proc in self._procs

    @property
    def processes(self) -> tuple:
        return tuple(self._procs)

    def register(self, proc) -> None:
        if proc not in self._procs:
            self._procs.append(proc)

    def unregister(self, proc) -> None:
        # Already gone after terminate_all(); that is fine.
        if proc in self._procs:
            self._procs.remove(proc)

    def terminate_all(self) -> int:
        procs, self._procs = self._procs, []
        running = [p for p in procs if p.is_running()]
        if not running:
            return 0
        log.info("Terminating %d process(es)", len(running))
        self.terminating.emit(len(running))
        for p in running:
            p.terminate()
        QTimer.singleShot(self.grace_ms, lambda: self._kill_stragglers(running))
        return len(running)

    def _kill_stragglers(self, procs: list) -> None:
        for p in procs:
            if p.is_running():
                log.warning("Process did not exit within %d ms, killing it", self.grace_ms)
                p.kill()
