# whisperq/models/job.py
from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class JobOptions:
    model: str = "base.en"
    language: str = "auto"
    output_txt: bool = True
    output_srt: bool = False
    cpu_only: bool = False
    open_after: bool = True
    extra_args: str = ""


@dataclass(frozen=True)
class Job:
    source_path: Path
    options: JobOptions = field(default_factory=JobOptions)

    @property
    def name(self) -> str:
        return self.source_path.name
