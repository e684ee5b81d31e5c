# whisperq/workers/stage_runner.py
import shlex
from typing import Callable, Iterable

from PySide6.QtCore import QObject, QProcess, Signal

from ..utils.logging_utils import get_logger
from .supervisor import ProcessSupervisor

log = get_logger(__name__)

OutputCallback = Callable[[str], None]
CompleteCallback = Callable[[int, bool], None]


def format_cmdline(executable: str, args: Iterable[str]) -> str:
    return " ".join(shlex.quote(c) for c in [executable, *args])


class ManagedProcess(QObject):
    """A QProcess with merged output, an output buffer and a one-shot completion."""

    output = Signal(str)
    completed = Signal(int, bool)  # exit code, crashed

    def __init__(self, executable: str, args: Iterable[str], parent: QObject | None = None):
        super().__init__(parent)
        self.executable = str(executable)
        self.args = [str(a) for a in args]
        self.chunks: list[str] = []
        self.exit_code: int | None = None
        self.crashed = False
        self.error_text = ""
        self._finished = False

        self._proc = QProcess(self)
        self._proc.setProcessChannelMode(QProcess.ProcessChannelMode.MergedChannels)
        self._proc.readyReadStandardOutput.connect(self._read)
        self._proc.finished.connect(self._on_finished)
        self._proc.errorOccurred.connect(self._on_error)

    @property
    def cmdline(self) -> str:
        return format_cmdline(self.executable, self.args)

    @property
    def text(self) -> str:
        return "".join(self.chunks)

    @property
    def is_finished(self) -> bool:
        return self._finished

    def start(self) -> None:
        self._proc.start(self.executable, self.args)

    def is_running(self) -> bool:
        # Checked first: the QProcess may already be deleted once finished
        if self._finished:
            return False
        return self._proc.state() != QProcess.ProcessState.NotRunning

    def terminate(self) -> None:
        if self.is_running():
            self._proc.terminate()

    def kill(self) -> None:
        if self.is_running():
            self._proc.kill()

    def wait_for_finished(self, msecs: int) -> bool:
        if not self.is_running():
            return True
        return self._proc.waitForFinished(msecs)

    def _read(self) -> None:
        data = self._proc.readAllStandardOutput().data()
        if not data:
            return
        chunk = data.decode("utf-8", errors="replace")
        self.chunks.append(chunk)
        self.output.emit(chunk)

    def _on_finished(self, exit_code: int, exit_status: QProcess.ExitStatus) -> None:
        self._read()
        self._finish(exit_code, exit_status == QProcess.ExitStatus.CrashExit)

    def _on_error(self, error: QProcess.ProcessError) -> None:
        self.error_text = self._proc.errorString()
        # Crashed is followed by finished(); a failed start is not.
        if error == QProcess.ProcessError.FailedToStart:
            self._finish(-1, True)

    def _finish(self, exit_code: int, crashed: bool) -> None:
        if self._finished:
            return
        self._finished = True
        self.exit_code, self.crashed = exit_code, crashed
        self.completed.emit(exit_code, crashed)


class StageRunner:
    """Starts external processes and tracks them in a shared ProcessSupervisor."""

    def __init__(self, supervisor: ProcessSupervisor):
        self.supervisor = supervisor
        self._active: set[ManagedProcess] = set()

    def run(
        self,
        executable: str,
        args: Iterable[str],
        on_output: OutputCallback | None = None,
        on_complete: CompleteCallback | None = None,
    ) -> ManagedProcess:
        proc = ManagedProcess(executable, args)
        if on_output is not None:
            proc.output.connect(on_output)

        def _complete(exit_code: int, crashed: bool):
            self.supervisor.unregister(proc)
            self._active.discard(proc)
            if crashed and proc.error_text:
                log.debug("%s: %s", proc.executable, proc.error_text)
            if on_complete is not None:
                on_complete(exit_code, crashed)
            # Drop the self-reference held by this connection and free the QProcess
            proc.completed.disconnect(_complete)
            proc.deleteLater()

        proc.completed.connect(_complete)
        self._active.add(proc)
        self.supervisor.register(proc)
        log.debug("$ %s", proc.cmdline)
        proc.start()
        return proc
