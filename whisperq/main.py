# whisperq/main.py
import argparse
import signal
import sys

from PySide6.QtCore import QCoreApplication, QTimer

from .orchestrator import Orchestrator
from .utils.logging_utils import setup_logging
from .utils.settings import LANGUAGES, MODELS, load_settings, save_settings


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="whisperq", description="Queue media files for whisper.cpp transcription.")
    p.add_argument("paths", nargs="*", help="media files to transcribe, in order")
    p.add_argument("--model", choices=MODELS, help="whisper.cpp model name")
    p.add_argument("--language", choices=LANGUAGES, help="spoken language (auto to detect)")
    p.add_argument("--srt", action="store_true", default=None, help="also write an .srt subtitle file")
    p.add_argument("--no-txt", dest="txt", action="store_false", default=None, help="do not write a .txt transcript")
    p.add_argument("--cpu", action="store_true", default=None, help="pass --no-gpu to whisper")
    p.add_argument("--no-open", dest="open_after", action="store_false", default=None,
                   help="do not open the transcript when a job finishes")
    p.add_argument("--args", dest="extra_args", help="extra whisper-cli arguments")
    p.add_argument("--save", action="store_true", help="persist the options above as defaults")
    p.add_argument("--live", action="store_true", help="transcribe the microphone until interrupted")
    p.add_argument("--log-level", help="DEBUG, INFO, WARNING…")
    p.add_argument("--log-file", help="also append log records to this file")
    return p


def apply_overrides(settings: dict, ns: argparse.Namespace) -> dict:
    s = dict(settings)
    if ns.model: s["model"] = MODELS.index(ns.model)
    if ns.language: s["language"] = LANGUAGES.index(ns.language)
    if ns.srt is not None: s["srt_file"] = ns.srt
    if ns.txt is not None: s["txt_file"] = ns.txt
    if ns.cpu is not None: s["cpu_only"] = ns.cpu
    if ns.open_after is not None: s["open_after"] = ns.open_after
    if ns.extra_args is not None: s["extra_args"] = ns.extra_args
    return s


def main(argv: list[str] | None = None) -> int:
    ns = build_parser().parse_args(argv)
    setup_logging(ns.log_level, ns.log_file)

    if not ns.paths and not ns.live:
        print("No media file specified. Pass one or more paths, or --live.", file=sys.stderr)
        return 2

    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    settings = apply_overrides(load_settings(), ns)
    if ns.save:
        save_settings(settings)

    orch = Orchestrator(settings)
    orch.log_line.connect(lambda line: print(line, flush=True))
    orch.live_text.connect(lambda line: print(line, flush=True))

    # Let Python see SIGINT while the Qt loop is running
    tick = QTimer(); tick.timeout.connect(lambda: None); tick.start(200)

    if ns.live:
        signal.signal(signal.SIGINT, lambda *_: orch.stop_live())
        orch.live.ended.connect(app.quit)
        if not orch.start_live():
            return 1
        app.exec()
        return 0

    def _interrupt(*_):
        orch.queue.clear()
        orch.stop()

    signal.signal(signal.SIGINT, _interrupt)
    opts = orch.current_options()
    if opts.output_txt and opts.open_after:
        # give the delayed viewer launch a chance before leaving
        orch.queue.idle.connect(lambda: QTimer.singleShot(orch.config.viewer_delay_ms + 250, app.quit))
    else:
        orch.queue.idle.connect(app.quit)
    orch.enqueue(ns.paths)
    if orch.queue.is_processing:
        app.exec()
    return 0 if orch.results and all(ok for _, ok, _ in orch.results) else 1


if __name__ == "__main__":
    sys.exit(main())
