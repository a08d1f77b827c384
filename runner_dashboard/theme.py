"""
Theme and stylesheet for the Runner Log Dashboard.

The Qt stylesheet is assembled from ``(selector, properties)`` rules so
the dashboard-specific widgets (summary cards, error banner, empty-state
hint, raw data table) sit next to the generic ones.  ``apply_plot_style``
switches matplotlib rcParams between the dark GUI style and the light
export style.
"""

from typing import Dict, List, Tuple

import matplotlib as mpl

from .constants import DARK_COLORS

_Rule = Tuple[str, Dict[str, str]]


def _dashboard_rules(c: Dict[str, str]) -> List[_Rule]:
    return [
        ("QMainWindow, QWidget", {
            'background-color': c['bg'], 'color': c['fg'], 'font-size': '13px',
        }),
        ("QLabel", {'color': c['fg']}),

        # Summary cards, banner and hint
        ("QFrame#SummaryCard", {
            'background-color': c['bg_widget'],
            'border': f"1px solid {c['border']}",
            'border-radius': '10px',
        }),
        ("QLabel#ErrorBanner", {
            'background-color': '#3b1d24',
            'color': c['red'],
            'border': f"1px solid {c['red']}",
            'border-radius': '6px',
            'padding': '8px 12px',
        }),
        ("QLabel#EmptyHint", {'color': c['fg_dim'], 'font-size': '15px'}),

        # Buttons
        ("QPushButton", {
            'background-color': c['bg_widget'],
            'border': f"1px solid {c['border']}",
            'border-radius': '4px',
            'padding': '6px 16px',
            'min-height': '24px',
        }),
        ("QPushButton:hover", {
            'background-color': c['selection'], 'border-color': c['accent_hover'],
        }),
        ("QPushButton:disabled", {
            'background-color': c['bg'], 'color': c['fg_dim'],
        }),

        # Upload progress
        ("QProgressBar", {
            'background-color': c['bg_input'],
            'border': f"1px solid {c['border']}",
            'border-radius': '4px',
            'max-height': '10px',
        }),
        ("QProgressBar::chunk", {
            'background-color': c['green'], 'border-radius': '3px',
        }),

        # Tabs and raw data table
        ("QTabWidget::pane", {'border': f"1px solid {c['border']}"}),
        ("QTabBar::tab", {
            'background-color': c['bg_alt'],
            'color': c['fg_dim'],
            'padding': '8px 18px',
            'border-top-left-radius': '4px',
            'border-top-right-radius': '4px',
        }),
        ("QTabBar::tab:selected", {
            'color': c['fg_bright'],
            'border-bottom': f"2px solid {c['accent']}",
        }),
        ("QTableView", {
            'background-color': c['bg_widget'],
            'alternate-background-color': c['bg_alt'],
            'gridline-color': c['border'],
            'selection-background-color': c['selection'],
        }),
        ("QHeaderView::section", {
            'background-color': c['bg_alt'],
            'padding': '4px 8px',
            'border': 'none',
            'border-bottom': f"1px solid {c['border']}",
            'font-weight': 'bold',
        }),

        # Window chrome
        ("QMenuBar, QStatusBar", {
            'background-color': c['bg_alt'], 'color': c['fg_dim'],
        }),
        ("QMenu", {
            'background-color': c['bg_widget'],
            'border': f"1px solid {c['border']}",
        }),
        ("QMenuBar::item:selected, QMenu::item:selected", {
            'background-color': c['selection'],
        }),
    ]


def get_dark_stylesheet() -> str:
    """Qt stylesheet for the dark dashboard theme."""
    blocks = []
    for selector, props in _dashboard_rules(DARK_COLORS):
        body = "\n".join(f"    {name}: {value};" for name, value in props.items())
        blocks.append(f"{selector} {{\n{body}\n}}")
    return "\n".join(blocks)


def apply_plot_style(style_dict: dict) -> None:
    """Apply ``PLOT_STYLE_DARK`` or ``PLOT_STYLE_LIGHT`` to rcParams."""
    mpl.rcParams.update(style_dict)
