# whisperq/utils/settings.py
import json
from pathlib import Path

from ..models.job import JobOptions
from .logging_utils import get_logger

log = get_logger(__name__)


# Top directory = folder that contains the `whisperq/` package
def _top_dir() -> Path:
    # This file is whisperq/utils/settings.py → parents[2] is the folder above whisperq/
    return Path(__file__).resolve().parents[2]

APP_SETTINGS_FILE = _top_dir() / "whisperq_settings.json"

MODELS = [
    "tiny", "tiny.en", "base", "base.en", "small", "small.en",
    "medium", "medium.en", "large-v1", "large-v2", "large-v3", "large-v3-turbo",
]

LANGUAGES = [
    "auto", "en", "de", "es", "fr", "it", "ja", "ko", "nl", "pl",
    "pt", "ru", "sv", "tr", "uk", "zh",
]

DEFAULT_SETTINGS = {
    "model": 3,                        # index into MODELS
    "language": 0,                     # index into LANGUAGES
    "txt_file": True,                  # -otxt
    "srt_file": False,                 # -osrt
    "cpu_only": False,                 # --no-gpu
    "open_after": True,                # open the .txt when a job succeeds
    "extra_args": "-tp 0.0 -mc 64 -et 3.0",

    # External tools
    "ffmpeg_path": "ffmpeg",
    "curl_path": "curl",
    "whisper_cli_path": "whisper-cli",
    "whisper_stream_path": "whisper-stream",
    "models_dir": str(_top_dir() / "models"),
    "model_base_url": "https://huggingface.co/ggerganov/whisper.cpp/resolve/main",
}

def load_settings() -> dict:
    p = APP_SETTINGS_FILE
    if p.exists():
        try:
            data = json.loads(p.read_text())
            return {**DEFAULT_SETTINGS, **data}
        except (OSError, ValueError) as e:
            log.warning("Unreadable settings file %s (%s), using defaults", p, e)
    # First run or broken file → write defaults so the file exists in the top dir
    save_settings(DEFAULT_SETTINGS)
    return DEFAULT_SETTINGS.copy()

def save_settings(data: dict) -> None:
    p = APP_SETTINGS_FILE
    try:
        p.write_text(json.dumps(data, indent=2))
    except OSError:
        # Last resort fallback to CWD
        Path("whisperq_settings.json").write_text(json.dumps(data, indent=2))

def _pick(names: list[str], value, default: int) -> str:
    if isinstance(value, str) and value in names:
        return value
    try:
        return names[int(value)]
    except (ValueError, TypeError, IndexError):
        return names[default]

def job_options(settings: dict) -> JobOptions:
    """Snapshot of the options a newly queued job should run with."""
    return JobOptions(
        model=_pick(MODELS, settings.get("model"), DEFAULT_SETTINGS["model"]),
        language=_pick(LANGUAGES, settings.get("language"), DEFAULT_SETTINGS["language"]),
        output_txt=bool(settings.get("txt_file", True)),
        output_srt=bool(settings.get("srt_file", False)),
        cpu_only=bool(settings.get("cpu_only", False)),
        open_after=bool(settings.get("open_after", True)),
        extra_args=str(settings.get("extra_args", "")).strip(),
    )
