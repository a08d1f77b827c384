"""
Entry point for the Runner Log Dashboard.

Usage:
    python -m runner_dashboard [CSV] [--log-level LEVEL]
    runner-dashboard [CSV] [--log-level LEVEL]

A CSV path given on the command line starts streaming as soon as the
window is shown.
"""

import argparse
import importlib.util
import logging
import os
import sys
import traceback
from typing import List, Optional

from . import APP_NAME, APP_VERSION

logger = logging.getLogger("runner_dashboard")

# Import name → distribution name
_REQUIRED = {
    'PySide6': 'PySide6',
    'matplotlib': 'matplotlib',
    'numpy': 'numpy',
}


def _missing_dependencies() -> List[str]:
    return [dist for module, dist in _REQUIRED.items()
            if importlib.util.find_spec(module) is None]


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="runner-dashboard",
        description="Running-log CSV dashboard.",
    )
    parser.add_argument("csv", nargs="?", default=None,
                        help="CSV file to load on start-up.")
    parser.add_argument("--log-level", default="INFO",
                        help="DEBUG, INFO, WARNING or ERROR.")
    parser.add_argument("--version", action="version",
                        version=f"{APP_NAME} {APP_VERSION}")
    return parser.parse_args(argv)


def _exception_hook(exc_type, exc_value, exc_tb):
    """Log uncaught exceptions and, once Qt is up, show them in a dialog."""
    detail = ''.join(traceback.format_exception(exc_type, exc_value, exc_tb))
    logger.critical("Unhandled exception:\n%s", detail)

    from PySide6.QtWidgets import QApplication, QMessageBox
    if QApplication.instance() is None:
        return
    QMessageBox.critical(
        None, "Unhandled Error",
        f"{exc_type.__name__}: {exc_value}\n\n"
        f"The full traceback was written to the console.",
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Launch the dashboard window and run the Qt event loop."""
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(name)s | %(levelname)s | %(message)s",
    )

    missing = _missing_dependencies()
    if missing:
        logger.error("Missing required packages: %s (pip install %s)",
                     ", ".join(missing), " ".join(missing))
        return 1

    sys.excepthook = _exception_hook

    # Backend must be chosen before any pyplot/Qt canvas import
    os.environ.setdefault("QT_API", "pyside6")
    import matplotlib
    matplotlib.use('QtAgg')

    from PySide6.QtGui import QFont, QFontDatabase
    from PySide6.QtWidgets import QApplication

    from .constants import FONT_FAMILIES
    from .gui_main import DashboardMainWindow
    from .theme import get_dark_stylesheet

    app = QApplication(sys.argv[:1])
    app.setApplicationName(APP_NAME)
    app.setStyle("Fusion")

    available = set(QFontDatabase.families())
    font = QFont(next((f for f in FONT_FAMILIES if f in available), ""), 10)
    app.setFont(font)
    app.setStyleSheet(get_dark_stylesheet())

    window = DashboardMainWindow()
    window.show()
    if args.csv:
        window.load_file(args.csv)

    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
