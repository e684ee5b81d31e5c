# whisperq/workers/pipeline.py
import logging
import shlex
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable

from PySide6.QtCore import QObject, QTimer, Signal

from ..errors import (
    ConversionFailed, InputNotFound, JobCanceled, ModelFetchFailed,
    PipelineError, ProcessCrashed, TranscriptionFailed,
)
from ..models.job import Job, JobOptions
from ..parsers.whisper_output import split_lines
from ..utils.logging_utils import get_logger
from ..utils.paths import (
    TARGET_AUDIO_EXT, converted_audio_path, file_size, is_target_audio,
    model_path, model_url, remove_partial, transcript_path,
)

log = get_logger(__name__)

MIN_MODEL_BYTES = 1_000_000
VIEWER_DELAY_MS = 2000


class Stage(str, Enum):
    START = "Start"
    CONVERTING = "Converting"
    ENSURING_MODEL = "EnsuringModel"
    TRANSCRIBING = "Transcribing"
    DONE = "Done"


@dataclass
class PipelineConfig:
    ffmpeg_path: str = "ffmpeg"
    curl_path: str = "curl"
    whisper_cli_path: str = "whisper-cli"
    models_dir: Path = Path("models")
    model_base_url: str = "https://huggingface.co/ggerganov/whisper.cpp/resolve/main"
    target_ext: str = TARGET_AUDIO_EXT
    min_model_bytes: int = MIN_MODEL_BYTES
    viewer: Callable[[Path], None] | None = None
    viewer_delay_ms: int = VIEWER_DELAY_MS

    @classmethod
    def from_settings(cls, settings: dict, viewer: Callable[[Path], None] | None = None) -> "PipelineConfig":
        return cls(
            ffmpeg_path=settings.get("ffmpeg_path") or "ffmpeg",
            curl_path=settings.get("curl_path") or "curl",
            whisper_cli_path=settings.get("whisper_cli_path") or "whisper-cli",
            models_dir=Path(settings["models_dir"]),
            model_base_url=settings.get("model_base_url") or cls.model_base_url,
            viewer=viewer,
        )


def split_args(text: str) -> list[str]:
    if not text or not text.strip():
        return []
    try:
        return shlex.split(text)
    except ValueError:
        # Unbalanced quotes: fall back to plain whitespace tokens
        return text.split()


def convert_args(src: Path, dest: Path) -> list[str]:
    return ["-n", "-i", str(src), "-q:a", "2", str(dest)]


def fetch_args(url: str, dest: Path) -> list[str]:
    return ["-L", url, "-o", str(dest)]


def transcribe_args(model: Path, audio: Path, options: JobOptions) -> list[str]:
    args = ["-m", str(model), "-f", str(audio)]
    if options.output_txt:
        args.append("-otxt")
    if options.output_srt:
        args.append("-osrt")
    if options.cpu_only:
        args.append("--no-gpu")
    args += ["-l", options.language]
    args += split_args(options.extra_args)
    return args


class PipelineRunner(QObject):
    """Runs one job through convert → ensure model → transcribe.

    Every stage completion drives exactly one transition: to the next stage
    on success, to DONE on failure. ``done`` is emitted once per runner.
    """

    log_line = Signal(str)
    stage_changed = Signal(str)
    done = Signal(bool, str)  # ok, message

    def __init__(self, job: Job, stage_runner, config: PipelineConfig, parent: QObject | None = None):
        super().__init__(parent)
        self.job = job
        self.stage_runner = stage_runner
        self.config = config
        self.stage = Stage.START
        self.working_path: Path | None = None
        self.model_file: Path | None = None
        self.error: PipelineError | None = None
        self.ok: bool | None = None
        self._canceled = False
        self._process = None

    @property
    def is_done(self) -> bool:
        return self.stage is Stage.DONE

    def cancel(self, terminate: bool = True) -> None:
        """Mark the job as canceled; optionally stop the running stage here.

        With ``terminate=False`` the caller is expected to end the process
        (e.g. through ProcessSupervisor.terminate_all).
        """
        if self.is_done:
            return
        self._canceled = True
        if terminate and self._process is not None and self._process.is_running():
            self._process.terminate()

    def start(self) -> None:
        if self.stage is not Stage.START:
            return
        src = self.job.source_path
        if not src.exists():
            self._fail(InputNotFound(f"Error: File not found: {src}"))
            return
        self.working_path = src.absolute()
        self._say(f"Input file: {self.working_path}")
        self._convert()

    # ----- stages -----

    def _convert(self) -> None:
        src = self.working_path
        if is_target_audio(src, self.config.target_ext):
            self._say(f"Input already {self.config.target_ext}, skipping conversion.")
            self._ensure_model()
            return

        self._enter(Stage.CONVERTING)
        dest = converted_audio_path(src, self.config.target_ext)
        self._say(f"Converting {src} to {self.config.target_ext.lstrip('.').upper()}...")
        self._run(
            self.config.ffmpeg_path, convert_args(src, dest),
            lambda code, crashed: self._on_converted(dest, code, crashed),
        )

    def _on_converted(self, dest: Path, exit_code: int, crashed: bool) -> None:
        if self._canceled or crashed:
            remove_partial(dest)
            self._fail(self._crash_error("Conversion"))
        elif exit_code != 0 or file_size(dest) <= 0:
            remove_partial(dest)
            self._fail(ConversionFailed(f"FFmpeg conversion failed. Exit code: {exit_code}"))
        else:
            self._say("FFmpeg conversion successful.")
            self.working_path = dest
            self._ensure_model()

    def _ensure_model(self) -> None:
        self._enter(Stage.ENSURING_MODEL)
        models_dir = Path(self.config.models_dir)
        try:
            models_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            self._fail(ModelFetchFailed(f"Failed to create models directory {models_dir}: {e}"))
            return

        target = model_path(models_dir, self.job.options.model)
        self.model_file = target
        if target.exists():
            self._say(f"Model file exists: {target}")
            self._transcribe()
            return

        url = model_url(self.config.model_base_url, self.job.options.model)
        self._say(f"Model file not found: {target}")
        self._say(f"Downloading model from {url}")
        self._run(
            self.config.curl_path, fetch_args(url, target),
            lambda code, crashed: self._on_fetched(target, code, crashed),
        )

    def _on_fetched(self, target: Path, exit_code: int, crashed: bool) -> None:
        if self._canceled or crashed:
            remove_partial(target)
            self._fail(self._crash_error("Model download"))
            return
        if exit_code != 0:
            remove_partial(target)
            self._fail(ModelFetchFailed(f"Failed to download model. Exit code: {exit_code}"))
            return
        size = file_size(target)
        if size < self.config.min_model_bytes:
            # Typically an HTML error page saved under the model's name
            remove_partial(target)
            self._fail(ModelFetchFailed(f"Downloaded model appears to be too small ({size} bytes)."))
            return
        self._say(f"Model downloaded successfully: {target}")
        self._transcribe()

    def _transcribe(self) -> None:
        self._enter(Stage.TRANSCRIBING)
        args = transcribe_args(self.model_file, self.working_path, self.job.options)
        self._run(self.config.whisper_cli_path, args, self._on_transcribed)

    def _on_transcribed(self, exit_code: int, crashed: bool) -> None:
        if self._canceled or crashed:
            self._fail(self._crash_error("Transcription"))
            return
        if exit_code != 0:
            self._fail(TranscriptionFailed(f"Whisper process failed. Exit code: {exit_code}"))
            return

        opts = self.job.options
        if opts.output_txt and opts.open_after and self.config.viewer is not None:
            out = transcript_path(self.working_path)
            viewer = self.config.viewer
            QTimer.singleShot(self.config.viewer_delay_ms, lambda: viewer(out))
            self._succeed("Whisper processing complete. Opening transcript.")
        else:
            self._succeed("Whisper processing complete.")

    # ----- plumbing -----

    def _run(self, executable: str, args: list[str], on_complete) -> None:
        self._say(f"Running: {executable} {' '.join(args)}", logging.DEBUG)
        self._process = self.stage_runner.run(executable, args, self._on_output, on_complete)

    def _on_output(self, chunk: str) -> None:
        for line in split_lines(chunk):
            self.log_line.emit(line)

    def _crash_error(self, stage: str) -> PipelineError:
        if self._canceled:
            return JobCanceled(f"{stage} stopped by user.")
        detail = getattr(self._process, "error_text", "")
        return ProcessCrashed(stage, detail)

    def _enter(self, stage: Stage) -> None:
        self.stage = stage
        self.stage_changed.emit(stage.value)

    def _say(self, msg: str, level: int = logging.INFO) -> None:
        log.log(level, "[%s] %s", self.job.name, msg)
        self.log_line.emit(msg)

    def _succeed(self, message: str) -> None:
        self._finish(True, message)

    def _fail(self, error: PipelineError) -> None:
        self.error = error
        log.warning("[%s] %s", self.job.name, error)
        self.log_line.emit(str(error))
        self._finish(False, str(error))

    def _finish(self, ok: bool, message: str) -> None:
        if self.is_done:
            return
        self.ok = ok
        self._enter(Stage.DONE)
        if ok:
            self._say(message)
        self._process = None
        self.done.emit(ok, message)
