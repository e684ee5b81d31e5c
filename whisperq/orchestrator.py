# whisperq/orchestrator.py
from pathlib import Path
from typing import Callable, Iterable

from PySide6.QtCore import QObject, Signal

from .errors import LiveSessionError
from .models.job import Job
from .utils.logging_utils import get_logger
from .utils.paths import model_path
from .utils.settings import job_options, load_settings
from .utils.viewer import open_in_viewer
from .workers.job_queue import JobQueue
from .workers.live import LiveSession
from .workers.pipeline import PipelineConfig, PipelineRunner
from .workers.stage_runner import StageRunner
from .workers.supervisor import ProcessSupervisor

log = get_logger(__name__)


class Orchestrator(QObject):
    """Wires settings, the process registry, the job queue and the live session."""

    log_line = Signal(str)
    live_text = Signal(str)

    def __init__(self, settings: dict | None = None,
                 viewer: Callable[[Path], None] | None = open_in_viewer,
                 stage_runner: StageRunner | None = None,
                 parent: QObject | None = None):
        super().__init__(parent)
        self.settings = settings if settings is not None else load_settings()
        self.supervisor = ProcessSupervisor(parent=self)
        self.supervisor.terminating.connect(lambda n: self.log_line.emit(f"Stopping {n} running process(es)..."))
        self.stage_runner = stage_runner or StageRunner(self.supervisor)
        self.config = PipelineConfig.from_settings(self.settings, viewer)
        self.results: list[tuple[Job, bool, str]] = []

        self.queue = JobQueue(self._make_runner, self.current_options, self)
        self.queue.job_started.connect(self._on_job_started)
        self.queue.job_finished.connect(self._on_job_finished)

        self.live = LiveSession(
            self.stage_runner, self.settings.get("whisper_stream_path") or "whisper-stream", parent=self
        )
        self.live.text.connect(self.live_text)
        self.live.log_line.connect(self.log_line)

    def current_options(self):
        return job_options(self.settings)

    def _make_runner(self, job: Job) -> PipelineRunner:
        runner = PipelineRunner(job, self.stage_runner, self.config, self)
        runner.log_line.connect(self.log_line)
        return runner

    def enqueue(self, paths: Iterable) -> list[Job]:
        return self.queue.enqueue(paths)

    def stop(self) -> None:
        """Stop every running process: the active job's stage and the live session."""
        if self.queue.active is not None:
            self.queue.active.cancel(terminate=False)
        self.supervisor.terminate_all()
        self.log_line.emit("The user stopped the process.")

    def start_live(self) -> bool:
        opts = self.current_options()
        path = model_path(self.config.models_dir, opts.model)
        try:
            return self.live.start(path, opts.language, opts.cpu_only)
        except LiveSessionError as e:
            log.warning("%s", e)
            self.log_line.emit(f"{e}. Transcribe a file once with this model to download it.")
            return False

    def stop_live(self) -> None:
        self.live.stop()

    def toggle_live(self) -> bool:
        if self.live.is_running:
            self.stop_live()
            return False
        return self.start_live()

    def shutdown(self) -> None:
        self.queue.clear()
        self.live.stop()
        self.stop()

    def _on_job_started(self, job: Job) -> None:
        left = len(self.queue)
        self.log_line.emit(f"=== {job.name} ({left} more queued) ===")

    def _on_job_finished(self, job: Job, ok: bool, message: str) -> None:
        self.results.append((job, ok, message))
        self.log_line.emit(f"{job.name}: {'Done' if ok else 'Failed'}")
