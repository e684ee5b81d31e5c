# whisperq/utils/paths.py
from pathlib import Path

from .logging_utils import get_logger

log = get_logger(__name__)

TARGET_AUDIO_EXT = ".mp3"
MODEL_PREFIX = "ggml-"
MODEL_SUFFIX = ".bin"

def is_target_audio(path: Path, ext: str = TARGET_AUDIO_EXT) -> bool:
    return path.suffix.lower() == ext.lower()

def converted_audio_path(src: Path, ext: str = TARGET_AUDIO_EXT) -> Path:
    # a/b/clip.final.mkv -> a/b/clip.final.mp3
    return src.parent / f"{src.stem}{ext}"

def transcript_path(audio: Path) -> Path:
    """whisper-cli appends the output extension to the full input name."""
    return audio.parent / f"{audio.name}.txt"

def model_file_name(model: str) -> str:
    return f"{MODEL_PREFIX}{model}{MODEL_SUFFIX}"

def model_path(models_dir: Path, model: str) -> Path:
    return Path(models_dir) / model_file_name(model)

def model_url(base_url: str, model: str) -> str:
    return f"{base_url.rstrip('/')}/{model_file_name(model)}"

def file_size(path: Path) -> int:
    try:
        return path.stat().st_size
    except OSError:
        return 0

def remove_partial(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        log.warning("Could not remove %s: %s", path, e)
