"""
Chart and table tabs for the Runner Log Dashboard.

Three tabs: average miles per person, daily miles trend, and the raw
uploaded rows.  Chart tabs host a matplotlib FigureCanvas with a
navigation toolbar and a PNG export button; the data tab is a
``QTableView`` over a read-only model of the raw rows.
"""

import os

from PySide6.QtWidgets import (
    QTabWidget, QWidget, QVBoxLayout, QHBoxLayout,
    QPushButton, QFileDialog, QMessageBox, QTableView, QHeaderView,
)
from PySide6.QtCore import Qt, QAbstractTableModel, QModelIndex

import matplotlib
matplotlib.use('QtAgg')
from matplotlib.figure import Figure
from matplotlib.backends.backend_qtagg import (
    FigureCanvasQTAgg as FigureCanvas,
    NavigationToolbar2QT as NavigationToolbar,
)

from .constants import DARK_COLORS, PLOT_STYLE_DARK
from .theme import apply_plot_style
from .data_model import DashboardMetrics
from .export import export_chart_png

from .chart_per_person import render_per_person
from .chart_daily_trend import render_daily_trend


class _ChartTab(QWidget):
    """Single chart tab with figure canvas, toolbar, and export button."""

    def __init__(self, render, figsize=(6, 4), parent=None):
        super().__init__(parent)
        self._render = render
        self._data = []

        layout = QVBoxLayout(self)
        layout.setContentsMargins(4, 4, 4, 4)
        layout.setSpacing(4)

        # ── Toolbar row ──────────────────────────────────────────────
        toolbar_row = QHBoxLayout()
        toolbar_row.setSpacing(4)

        self._fig = Figure(figsize=figsize)
        self._fig.set_facecolor(DARK_COLORS['bg_alt'])
        self._canvas = FigureCanvas(self._fig)
        self._toolbar = NavigationToolbar(self._canvas, self)

        toolbar_row.addWidget(self._toolbar)
        toolbar_row.addStretch()

        self._btn_export = QPushButton("Export PNG...")
        self._btn_export.setFixedHeight(28)
        self._btn_export.setStyleSheet("font-size: 11px; padding: 2px 8px;")
        self._btn_export.clicked.connect(lambda *_: self._on_export())
        toolbar_row.addWidget(self._btn_export)

        layout.addLayout(toolbar_row)
        layout.addWidget(self._canvas, 1)

    @property
    def fig(self) -> Figure:
        return self._fig

    @property
    def data(self):
        return self._data

    def update_chart(self, data):
        """Redraw with new view data."""
        self._data = data
        self._render(self._fig, data, for_export=False)
        self._canvas.draw_idle()

    def _on_export(self):
        path, _ = QFileDialog.getSaveFileName(
            self, "Export Chart as PNG",
            "", "PNG Files (*.png);;All Files (*)",
        )
        if not path:
            return
        try:
            export_chart_png(self._render, self._data, path)
            self.window().statusBar().showMessage(
                f"Exported to {os.path.basename(path)}", 3000
            )
        except (OSError, ValueError) as exc:
            QMessageBox.critical(
                self, "Export Error", f"Failed to export: {exc}"
            )


class RawRowTableModel(QAbstractTableModel):
    """Read-only table model over a list of raw row dicts."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self._rows = []
        self._columns = []

    def set_rows(self, rows, columns):
        self.beginResetModel()
        self._rows = rows
        self._columns = list(columns)
        self.endResetModel()

    def rowCount(self, parent=QModelIndex()):
        return 0 if parent.isValid() else len(self._rows)

    def columnCount(self, parent=QModelIndex()):
        return 0 if parent.isValid() else len(self._columns)

    def data(self, index, role=Qt.ItemDataRole.DisplayRole):
        if not index.isValid() or role != Qt.ItemDataRole.DisplayRole:
            return None
        key = self._columns[index.column()]
        value = self._rows[index.row()].get(key)
        return "" if value is None else str(value)

    def headerData(self, section, orientation, role=Qt.ItemDataRole.DisplayRole):
        if role != Qt.ItemDataRole.DisplayRole:
            return None
        if orientation == Qt.Orientation.Horizontal:
            return self._columns[section].upper()
        return str(section + 1)


class ChartTabsWidget(QTabWidget):
    """Tabbed container: per-person chart, daily trend, raw data table."""

    def __init__(self, parent=None):
        super().__init__(parent)

        self._tab_people = _ChartTab(render_per_person, figsize=(7, 4.5))
        self._tab_trend = _ChartTab(render_daily_trend, figsize=(7, 4.5))

        self._table_model = RawRowTableModel(self)
        self._table_view = QTableView()
        self._table_view.setModel(self._table_model)
        self._table_view.setAlternatingRowColors(True)
        self._table_view.horizontalHeader().setSectionResizeMode(
            QHeaderView.ResizeMode.Stretch
        )

        self.addTab(self._tab_people, "Per Person")
        self.addTab(self._tab_trend, "Daily Trend")
        self.addTab(self._table_view, "Data Table")

        apply_plot_style(PLOT_STYLE_DARK)

    def update_all(self, metrics: DashboardMetrics, rows, columns) -> None:
        """Re-render both charts and reload the data table.

        Parameters
        ----------
        metrics : DashboardMetrics
        rows : list of dict
            Raw rows in file order.
        columns : list of str
            Column order for the table.
        """
        apply_plot_style(PLOT_STYLE_DARK)
        self._tab_people.update_chart(metrics.per_person)
        self._tab_trend.update_chart(metrics.daily_trend)
        self._table_model.set_rows(rows, columns)

    def chart_exports(self) -> dict:
        """``{filename_stem: (render, data)}`` for batch export."""
        return {
            "per_person": (render_per_person, self._tab_people.data),
            "daily_trend": (render_daily_trend, self._tab_trend.data),
        }
