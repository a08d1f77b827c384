"""
Main window for the Runner Log Dashboard.

Action buttons, upload progress and the error banner on top, four
summary cards below them, and the chart/table tabs filling the rest.

All dashboard state lives in a ``DashboardSession``.  Uploads stream on
an ``IngestWorker`` thread whose signals feed the session's handlers;
the window only redraws from session snapshots.  Chart redraws are
coalesced with a short timer so a large file streaming in does not
redraw on every chunk.
"""

import os
import tempfile

from PySide6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QGridLayout, QFrame,
    QLabel, QPushButton, QProgressBar, QFileDialog, QMessageBox,
)
from PySide6.QtGui import QAction
from PySide6.QtCore import Qt, QTimer

from . import APP_NAME, APP_VERSION
from .constants import (
    CSV_EXPORT_FILENAME, PDF_EXPORT_FILENAME, PROGRESS_CLEAR_DELAY_MS,
    SUMMARY_CARD_COLORS,
)
from .data_model import OverallStats
from .example_data import generate_example_csv
from .export import export_chart_png, export_csv, export_pdf_report
from .gui_chart_tabs import ChartTabsWidget
from .gui_ingest import IngestWorker
from .session import STATUS_LOADING, DashboardSession, SessionState

# Minimum interval between chart redraws while a file streams in
_REDRAW_INTERVAL_MS = 150


class _SummaryCard(QFrame):
    """One headline figure, e.g. "Average Miles  5.42"."""

    def __init__(self, label: str, color: str, parent=None):
        super().__init__(parent)
        self.setObjectName("SummaryCard")
        layout = QVBoxLayout(self)
        layout.setContentsMargins(12, 10, 12, 10)

        title = QLabel(label)
        title.setAlignment(Qt.AlignmentFlag.AlignCenter)
        title.setStyleSheet(f"color: {color}; font-weight: bold; font-size: 14px;")
        self._value = QLabel("–")
        self._value.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._value.setStyleSheet("font-size: 26px; font-weight: bold;")

        layout.addWidget(title)
        layout.addWidget(self._value)

    def set_value(self, value: float):
        self._value.setText(f"{value:.2f}")


class DashboardMainWindow(QMainWindow):
    """Main window for the Runner Log Dashboard."""

    def __init__(self):
        super().__init__()
        self._session = DashboardSession()
        self._workers = set()
        self._rendered_chunks = None

        self._redraw_timer = QTimer(self)
        self._redraw_timer.setSingleShot(True)
        self._redraw_timer.setInterval(_REDRAW_INTERVAL_MS)
        self._redraw_timer.timeout.connect(self._redraw)

        self.setWindowTitle(f"{APP_NAME} v{APP_VERSION}")
        self.setMinimumSize(1100, 760)

        self._setup_ui()
        self._setup_menu()
        self._session.add_listener(self._on_state_changed)
        self._on_state_changed(self._session.state)

        self.statusBar().showMessage("Ready. Upload a CSV file to begin")

    # ── UI setup ─────────────────────────────────────────────────────

    def _setup_ui(self):
        central = QWidget()
        self.setCentralWidget(central)
        layout = QVBoxLayout(central)
        layout.setContentsMargins(8, 8, 8, 8)
        layout.setSpacing(8)

        # ── Action buttons ───────────────────────────────────────────
        buttons = QHBoxLayout()
        self._btn_upload = QPushButton("Upload CSV")
        self._btn_clear = QPushButton("Clear Data")
        self._btn_export_csv = QPushButton("Export CSV")
        self._btn_export_pdf = QPushButton("Export PDF")
        for btn in (self._btn_upload, self._btn_clear,
                    self._btn_export_csv, self._btn_export_pdf):
            buttons.addWidget(btn)
        buttons.addStretch()
        layout.addLayout(buttons)

        self._btn_upload.clicked.connect(lambda *_: self._browse_csv())
        self._btn_clear.clicked.connect(lambda *_: self._clear())
        self._btn_export_csv.clicked.connect(lambda *_: self._export_csv())
        self._btn_export_pdf.clicked.connect(lambda *_: self._export_pdf())

        # ── Progress and error ───────────────────────────────────────
        self._progress = QProgressBar()
        self._progress.setRange(0, 100)
        self._progress.setTextVisible(False)
        layout.addWidget(self._progress)

        self._error_banner = QLabel()
        self._error_banner.setObjectName("ErrorBanner")
        self._error_banner.setWordWrap(True)
        layout.addWidget(self._error_banner)

        # ── Summary cards ────────────────────────────────────────────
        cards = QGridLayout()
        cards.setSpacing(8)
        self._cards = {}
        for col, (label, color) in enumerate(SUMMARY_CARD_COLORS.items()):
            card = _SummaryCard(label, color)
            cards.addWidget(card, 0, col)
            self._cards[label] = card
        self._cards_box = QWidget()
        self._cards_box.setLayout(cards)
        layout.addWidget(self._cards_box)

        # ── Tabs / empty hint ────────────────────────────────────────
        self._chart_tabs = ChartTabsWidget()
        layout.addWidget(self._chart_tabs, 1)

        self._empty_hint = QLabel(
            "Upload a CSV file with headers: date, person, miles run\n"
            "or use Examples → Load Example Dataset."
        )
        self._empty_hint.setObjectName("EmptyHint")
        self._empty_hint.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(self._empty_hint, 1)

    def _setup_menu(self):
        menubar = self.menuBar()

        # ── File menu ────────────────────────────────────────────────
        file_menu = menubar.addMenu("File")

        act_open = QAction("Open CSV...", self)
        act_open.triggered.connect(lambda *_: self._browse_csv())
        file_menu.addAction(act_open)

        act_clear = QAction("Clear Data", self)
        act_clear.triggered.connect(lambda *_: self._clear())
        file_menu.addAction(act_clear)

        file_menu.addSeparator()

        act_export_csv = QAction("Export CSV...", self)
        act_export_csv.triggered.connect(lambda *_: self._export_csv())
        file_menu.addAction(act_export_csv)

        act_export_pdf = QAction("Export PDF Report...", self)
        act_export_pdf.triggered.connect(lambda *_: self._export_pdf())
        file_menu.addAction(act_export_pdf)

        act_export_charts = QAction("Export All Charts...", self)
        act_export_charts.triggered.connect(lambda *_: self._export_all_charts())
        file_menu.addAction(act_export_charts)

        file_menu.addSeparator()

        act_exit = QAction("Exit", self)
        act_exit.triggered.connect(self.close)
        file_menu.addAction(act_exit)

        # ── Examples menu ────────────────────────────────────────────
        examples_menu = menubar.addMenu("Examples")

        act_example = QAction("Load Example Dataset", self)
        act_example.triggered.connect(lambda *_: self._load_example())
        examples_menu.addAction(act_example)

        # ── Help menu ────────────────────────────────────────────────
        help_menu = menubar.addMenu("Help")

        act_about = QAction("About", self)
        act_about.triggered.connect(lambda *_: self._show_about())
        help_menu.addAction(act_about)

    # ── Upload ───────────────────────────────────────────────────────

    def _browse_csv(self):
        path, _ = QFileDialog.getOpenFileName(
            self, "Upload CSV", "", "CSV Files (*.csv);;All Files (*)",
        )
        if path:
            self.load_file(path)

    def _load_example(self):
        folder = os.path.join(tempfile.gettempdir(), "runner_dashboard_example")
        try:
            path = generate_example_csv(folder)
        except OSError as exc:
            QMessageBox.critical(self, "Example Data Error", str(exc))
            return
        self.load_file(path)

    def load_file(self, path: str):
        """Start streaming *path*; any upload in flight is superseded."""
        for worker in self._workers:
            worker.abort()

        session_id = self._session.new_session()
        worker = IngestWorker(path, session_id, parent=self)
        worker.chunk_ready.connect(self._on_chunk)
        worker.progress_changed.connect(self._on_progress)
        worker.failed.connect(self._on_failed)
        worker.succeeded.connect(self._on_succeeded)
        worker.finished.connect(lambda w=worker: self._on_worker_finished(w))
        self._workers.add(worker)

        self.statusBar().showMessage(f"Loading {os.path.basename(path)}...")
        worker.start()

    def _on_chunk(self, session_id: int, rows):
        self._session.apply_chunk(session_id, rows)

    def _on_progress(self, session_id: int, percent: int):
        self._session.apply_progress(session_id, percent)

    def _on_failed(self, session_id: int, message: str):
        if self._session.apply_failure(session_id, message):
            self.statusBar().showMessage("Upload failed", 5000)
            self._schedule_progress_clear(session_id)

    def _on_succeeded(self, session_id: int, headers):
        if self._session.apply_success(session_id, headers):
            metrics = self._session.metrics()
            self.statusBar().showMessage(
                f"Loaded {metrics.row_count} rows "
                f"({metrics.skipped_count} skipped), "
                f"{len(metrics.per_person)} runners, "
                f"{len(metrics.daily_trend)} days", 8000,
            )
            self._schedule_progress_clear(session_id)

    def _schedule_progress_clear(self, session_id: int):
        QTimer.singleShot(
            PROGRESS_CLEAR_DELAY_MS,
            lambda: self._session.clear_progress(session_id),
        )

    def _on_worker_finished(self, worker):
        self._workers.discard(worker)
        worker.deleteLater()

    def _clear(self):
        for worker in self._workers:
            worker.abort()
        self._session.reset()
        self.statusBar().showMessage("Data cleared", 3000)

    # ── State rendering ──────────────────────────────────────────────

    def _on_state_changed(self, state: SessionState):
        self._progress.setVisible(state.progress is not None)
        if state.progress is not None:
            self._progress.setValue(state.progress)

        self._error_banner.setVisible(state.error is not None)
        self._error_banner.setText(state.error or "")

        has_rows = bool(state.chunks)
        self._btn_export_csv.setEnabled(has_rows and state.status != STATUS_LOADING)
        self._btn_export_pdf.setEnabled(has_rows and state.status != STATUS_LOADING)

        if state.chunks is not self._rendered_chunks:
            if has_rows and state.status == STATUS_LOADING:
                if not self._redraw_timer.isActive():
                    self._redraw_timer.start()
            else:
                self._redraw_timer.stop()
                self._redraw()

    def _redraw(self):
        state = self._session.state
        self._rendered_chunks = state.chunks
        metrics = self._session.metrics()

        has_data = metrics.overall.has_data
        self._cards_box.setVisible(has_data)
        self._chart_tabs.setVisible(bool(state.chunks))
        self._empty_hint.setVisible(not state.chunks and state.error is None)

        self._set_summary(metrics.overall)
        self._chart_tabs.update_all(metrics, state.rows, state.columns)

    def _set_summary(self, overall: OverallStats):
        self._cards['Total Miles'].set_value(overall.total)
        self._cards['Average Miles'].set_value(overall.avg)
        self._cards['Max Miles'].set_value(overall.max)
        self._cards['Min Miles'].set_value(overall.min)

    # ── Export ───────────────────────────────────────────────────────

    def _export_csv(self):
        state = self._session.state
        if not state.chunks:
            QMessageBox.warning(self, "No Data", "Please upload a CSV file first.")
            return
        path, _ = QFileDialog.getSaveFileName(
            self, "Export CSV", CSV_EXPORT_FILENAME,
            "CSV Files (*.csv);;All Files (*)",
        )
        if not path:
            return
        try:
            export_csv(state.rows, path, columns=state.columns)
            self.statusBar().showMessage(
                f"Exported to {os.path.basename(path)}", 5000
            )
        except OSError as exc:
            QMessageBox.critical(self, "Export Error", f"Failed to export: {exc}")

    def _export_pdf(self):
        state = self._session.state
        if not state.chunks:
            QMessageBox.warning(self, "No Data", "Please upload a CSV file first.")
            return
        path, _ = QFileDialog.getSaveFileName(
            self, "Export PDF Report", PDF_EXPORT_FILENAME,
            "PDF Files (*.pdf);;All Files (*)",
        )
        if not path:
            return
        try:
            pages = export_pdf_report(
                state.rows, self._session.metrics().overall, path,
                columns=state.columns,
            )
            self.statusBar().showMessage(
                f"Exported {pages}-page report to {os.path.basename(path)}",
                5000,
            )
        except (OSError, ValueError) as exc:
            QMessageBox.critical(self, "Export Error", f"Failed to export: {exc}")

    def _export_all_charts(self):
        if not self._session.metrics().overall.has_data:
            QMessageBox.warning(self, "No Data", "Please upload a CSV file first.")
            return
        folder = QFileDialog.getExistingDirectory(
            self, "Select Output Folder for All Charts"
        )
        if not folder:
            return
        try:
            exports = self._chart_tabs.chart_exports()
            for stem, (render, data) in exports.items():
                export_chart_png(render, data, os.path.join(folder, f"{stem}.png"))
            self.statusBar().showMessage(
                f"Exported {len(exports)} charts to {os.path.basename(folder)}",
                5000,
            )
        except OSError as exc:
            QMessageBox.critical(
                self, "Export Error", f"Failed to export charts:\n\n{exc}"
            )

    def _show_about(self):
        QMessageBox.about(
            self,
            f"About {APP_NAME}",
            f"<h3>{APP_NAME} v{APP_VERSION}</h3>"
            f"<p>Streams a running-log CSV (date, person, miles run) and "
            f"shows overall and per-person mileage statistics with a "
            f"daily trend.</p>"
            f"<p>Exports the uploaded rows as CSV and a summary report "
            f"as PDF.</p>",
        )

    def closeEvent(self, event):
        for worker in list(self._workers):
            worker.abort()
            worker.wait(2000)
        super().closeEvent(event)
