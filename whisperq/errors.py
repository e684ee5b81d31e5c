# whisperq/errors.py
class PipelineError(Exception):
    """Base error for a transcription job."""


class InputNotFound(PipelineError, FileNotFoundError):
    """Raised when the job's input file is missing at start."""


class ConversionFailed(PipelineError):
    """Converter exited non-zero or produced no output."""


class ModelFetchFailed(PipelineError):
    """Model download failed or the saved asset is too small to be a model."""


class TranscriptionFailed(PipelineError):
    """Transcription engine exited non-zero."""


class ProcessCrashed(PipelineError):
    """A stage process terminated abnormally (crash, kill or failed start)."""

    def __init__(self, stage: str, detail: str = ""):
        self.stage = stage
        super().__init__(f"{stage} process crashed" + (f": {detail}" if detail else ""))


class LiveSessionError(PipelineError):
    """Raised when a live session cannot be started."""


class JobCanceled(PipelineError):
    """The user stopped the job while one of its stages was running."""
