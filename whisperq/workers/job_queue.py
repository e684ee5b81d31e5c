# whisperq/workers/job_queue.py
from collections import deque
from pathlib import Path
from typing import Callable, Iterable

from PySide6.QtCore import QObject, Signal

from ..models.job import Job, JobOptions
from ..utils.logging_utils import get_logger
from .pipeline import PipelineRunner

log = get_logger(__name__)

RunnerFactory = Callable[[Job], PipelineRunner]


class JobQueue(QObject):
    """FIFO of jobs with at most one active PipelineRunner.

    Any terminal outcome of the active runner, success or failure,
    dispatches the next job.
    """

    queue_changed = Signal(int)             # pending count
    job_started = Signal(object)            # Job
    job_finished = Signal(object, bool, str)  # Job, ok, message
    idle = Signal()

    def __init__(
        self,
        runner_factory: RunnerFactory,
        options_provider: Callable[[], JobOptions] = JobOptions,
        parent: QObject | None = None,
    ):
        super().__init__(parent)
        self.runner_factory = runner_factory
        self.options_provider = options_provider
        self._pending: deque[Job] = deque()
        self._active: PipelineRunner | None = None
        self._dispatching = False

    @property
    def active(self) -> PipelineRunner | None:
        return self._active

    @property
    def active_job(self) -> Job | None:
        return self._active.job if self._active is not None else None

    @property
    def is_processing(self) -> bool:
        return self._active is not None

    def pending(self) -> list[Job]:
        return list(self._pending)

    def __len__(self) -> int:
        return len(self._pending)

    def enqueue(self, paths: Iterable, options: JobOptions | None = None) -> list[Job]:
        jobs = []
        for p in paths:
            if not p or not str(p).strip():
                continue
            if options is None:
                options = self.options_provider()
            jobs.append(Job(Path(p), options))
        if not jobs:
            return []
        self._pending.extend(jobs)
        log.info("Queued %d file(s), %d pending", len(jobs), len(self._pending))
        self.queue_changed.emit(len(self._pending))
        if self._active is None:
            self._dispatch()
        return jobs

    def clear(self) -> None:
        if not self._pending:
            return
        log.info("Discarding %d pending job(s)", len(self._pending))
        self._pending.clear()
        self.queue_changed.emit(0)

    def on_job_finished(self, ok: bool = False, message: str = "") -> None:
        runner, self._active = self._active, None
        if runner is not None:
            runner.deleteLater()
            self.job_finished.emit(runner.job, ok, message)
        # A runner finishing inside _dispatch (e.g. missing input) is picked up by its loop
        if not self._dispatching:
            self._dispatch()

    def _dispatch(self) -> None:
        self._dispatching = True
        try:
            while self._active is None and self._pending:
                job = self._pending.popleft()
                self.queue_changed.emit(len(self._pending))
                runner = self.runner_factory(job)
                self._active = runner
                runner.done.connect(self.on_job_finished)
                self.job_started.emit(job)
                runner.start()
        finally:
            self._dispatching = False
        if self._active is None:
            self.idle.emit()
