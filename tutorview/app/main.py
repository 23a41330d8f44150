from __future__ import annotations

import argparse
import logging
import os
import sys
import time
import traceback
from pathlib import Path

from PySide6.QtCore import QtMsgType, qInstallMessageHandler
from PySide6.QtWidgets import QApplication

from tutorview.app import config
from tutorview.engine.commands import GRAMMARS, get_grammar
from tutorview.app.ui.tutor_window import TutorWindow


# Environment variables ("1"/"true" to enable):
#
# TUTORVIEW_DEBUG - debug-level logging for the parser, coordinator and typewriter queue


def _debug_enabled(var_name: str) -> bool:
    """Check if a debug flag is enabled."""
    return os.getenv(var_name, "0") not in ("0", "false", "False", "", None)


def _diag(msg: str) -> None:
    """Lightweight diagnostic logger for startup/teardown events."""
    timestamp = time.strftime("%Y-%m-%d %H:%M:%S")
    print(f"[TutorViewDiag {timestamp}] {msg}", file=sys.stderr)


def _qt_message_handler(mode: QtMsgType, context, message: str) -> None:
    """Custom Qt message handler to suppress known harmless warnings."""
    if "QWindowsFontEngineDirectWrite::recalcAdvances" in message:
        return
    if "Accessible invalid" in message or "Could not find accessible on path" in message:
        return
    if mode == QtMsgType.QtDebugMsg:
        print(f"Qt Debug: {message}", file=sys.stderr)
    elif mode == QtMsgType.QtWarningMsg:
        print(f"Qt Warning: {message}", file=sys.stderr)
    elif mode == QtMsgType.QtCriticalMsg:
        print(f"Qt Critical: {message}", file=sys.stderr)
    elif mode == QtMsgType.QtFatalMsg:
        print(f"Qt Fatal: {message}", file=sys.stderr)
        sys.exit(1)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Tutor View desktop entry point.")
    parser.add_argument("document", nargs="?", help="PDF, text or JSON page file to open at startup.")
    parser.add_argument(
        "--grammar",
        choices=sorted(GRAMMARS),
        help="Command grammar used to read tutor replies (default: saved preference).",
    )
    parser.add_argument("--reply", help="File holding a tutor reply to apply once the document is open.")
    return parser.parse_args(argv)


def _configure_logging() -> None:
    level = logging.DEBUG if _debug_enabled("TUTORVIEW_DEBUG") else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def main() -> None:
    args = _parse_args(sys.argv[1:])
    _configure_logging()
    start_ts = time.time()
    _diag("Application starting.")
    config.init_settings()
    qInstallMessageHandler(_qt_message_handler)
    qt_app = QApplication(sys.argv)
    qt_app.aboutToQuit.connect(lambda: _diag("QApplication aboutToQuit emitted."))

    grammar = get_grammar(args.grammar or config.load_command_grammar())
    window = TutorWindow(grammar=grammar)
    window.resize(1200, 800)
    try:
        document = args.document or config.load_last_document()
        if document and Path(document).exists():
            window.open_document(Path(document))
        if args.reply:
            try:
                reply = Path(args.reply).read_text(encoding="utf-8")
            except OSError as exc:
                _diag(f"Could not read reply file {args.reply}: {exc}")
            else:
                window.responses.submit_response(reply)
        window.show()
        _diag("Main window shown; entering Qt event loop.")
        rc = qt_app.exec()
        uptime = time.time() - start_ts
        _diag(f"Qt event loop exited with code {rc} after {uptime:.2f}s.")
        sys.exit(rc)
    except BaseException as exc:
        if isinstance(exc, SystemExit):
            raise
        uptime = time.time() - start_ts
        _diag(f"Unhandled exception after {uptime:.2f}s: {exc}")
        traceback.print_exc()
        qt_app.quit()
        sys.exit(1)


if __name__ == "__main__":  # pragma: no cover - manual entry point
    main()
