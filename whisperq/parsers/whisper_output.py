# whisperq/parsers/whisper_output.py
import re

_ANSI = re.compile(r"\x1B\[[0-9;?]*[A-Za-z]")
# [00:03.12] from whisper-stream, [00:00:00.000 --> 00:00:05.000] from whisper-cli
_TIMESTAMP = re.compile(
    r"\[\d{2}:\d{2}(?::\d{2})?[.,]\d{2,3}(?:\s*-->\s*\d{2}:\d{2}(?::\d{2})?[.,]\d{2,3})?\]\s*"
)
BLANK_AUDIO = "[BLANK_AUDIO]"
SENTENCE_END = (".", "?", "!")


def scrub(chunk: str) -> str:
    chunk = _ANSI.sub("", chunk)
    chunk = _TIMESTAMP.sub("", chunk)
    return chunk.replace(BLANK_AUDIO, "").strip()


def is_sentence(text: str) -> bool:
    return bool(text) and text.endswith(SENTENCE_END)


class FragmentFilter:
    """Turns raw streaming output into complete, non-repeated lines."""

    def __init__(self):
        self.last: str | None = None

    def reset(self):
        self.last = None

    def feed(self, chunk: str) -> str | None:
        text = scrub(chunk)
        if not is_sentence(text):
            return None
        if text == self.last:
            return None
        self.last = text
        return text


def split_lines(chunk: str) -> list[str]:
    """Split a raw output chunk on CR/LF, dropping blank lines."""
    return [ln.strip() for ln in re.split(r"[\r\n]+", chunk) if ln.strip()]
