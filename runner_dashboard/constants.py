"""
Constants for the Runner Log Dashboard.

Centralises the required CSV schema and its aliases, ingestion
defaults, export file names, colour palettes, font families and the
matplotlib style dicts used by the GUI and by exports.
"""

# ── Required CSV schema (normalized header names, canonical order) ──────
FIELD_DATE = "date"
FIELD_PERSON = "person"
FIELD_MILES = "miles run"

REQUIRED_FIELDS = (FIELD_DATE, FIELD_PERSON, FIELD_MILES)

# Normalized header names accepted for each required field, most
# preferred first.  Used both for the header-presence check and for
# row extraction so the two never disagree.
FIELD_ALIASES = {
    FIELD_DATE:   (FIELD_DATE,),
    FIELD_PERSON: (FIELD_PERSON, "name"),
    FIELD_MILES:  (FIELD_MILES, "miles", "distance"),
}

# ── Ingestion defaults ───────────────────────────────────────────────────
DEFAULT_BATCH_SIZE = 500
DEFAULT_ENCODING = "utf-8-sig"
READ_BLOCK_BYTES = 64 * 1024
# Header prefix for cells beyond the header row (numbered from 1)
OVERFLOW_COLUMN_PREFIX = "_extra_"
LARGE_FILE_WARNING_BYTES = 200 * 1024 * 1024

# Progress is capped below 100 while streaming; 100 means "done".
PROGRESS_STREAMING_MAX = 99
PROGRESS_DONE = 100
PROGRESS_CLEAR_DELAY_MS = 600

# ── Export defaults ──────────────────────────────────────────────────────
CSV_EXPORT_FILENAME = "runner_data.csv"
PDF_EXPORT_FILENAME = "Runner_Report.pdf"
PDF_REPORT_TITLE = "CSV Runner Dashboard Report"
# Table text lines per PDF page; a wrapped row takes one line per text line
PDF_LINES_PER_PAGE = 32
# Characters across the whole table width before cell text wraps
PDF_TABLE_LINE_CHARS = 140
PDF_PAGE_SIZE_INCHES = (8.27, 11.69)   # A4 portrait

EXPORT_DPI = 300
EXPORT_WIDTH_INCHES = 6.0

# ── Font family fallback chain ───────────────────────────────────────────
FONT_FAMILIES = [
    "Segoe UI", "DejaVu Sans", "Liberation Sans", "Noto Sans",
    "Ubuntu", "Helvetica", "Arial", "sans-serif",
]

# ── Dark GUI colour palette ──────────────────────────────────────────────
DARK_COLORS = {
    'bg':           '#0f2027',
    'bg_alt':       '#17303a',
    'bg_widget':    '#203a43',
    'bg_input':     '#2a4853',
    'fg':           '#e0f2fe',
    'fg_dim':       '#94a3b8',
    'fg_bright':    '#ffffff',
    'accent':       '#38bdf8',
    'accent_hover': '#22d3ee',
    'green':        '#34d399',
    'amber':        '#fbbf24',
    'red':          '#f87171',
    'pink':         '#f472b6',
    'border':       '#2c5364',
    'selection':    '#2c5364',
}

# ── Chart palette ────────────────────────────────────────────────────────
CHART_PALETTE = {
    'bar':          '#38bdf8',
    'bar_edge':     '#0284c7',
    'trend_line':   '#22d3ee',
    'trend_marker': '#38bdf8',
    'range_line':   '#94a3b8',
    'no_data_text': '#94a3b8',
}

# Summary card accents (label → colour), in display order
SUMMARY_CARD_COLORS = {
    'Total Miles':   DARK_COLORS['green'],
    'Average Miles': DARK_COLORS['accent'],
    'Max Miles':     DARK_COLORS['amber'],
    'Min Miles':     DARK_COLORS['pink'],
}

# ── Matplotlib dark-theme style dict (GUI preview) ──────────────────────
PLOT_STYLE_DARK = {
    'figure.facecolor':  DARK_COLORS['bg_alt'],
    'axes.facecolor':    DARK_COLORS['bg_widget'],
    'axes.edgecolor':    DARK_COLORS['border'],
    'axes.labelcolor':   DARK_COLORS['fg'],
    'text.color':        DARK_COLORS['fg'],
    'xtick.color':       DARK_COLORS['fg_dim'],
    'ytick.color':       DARK_COLORS['fg_dim'],
    'xtick.labelsize':   7,
    'ytick.labelsize':   7,
    'axes.labelsize':    8,
    'axes.titlesize':    9,
    'grid.color':        DARK_COLORS['border'],
}

# ── Matplotlib light-theme style dict (export / report) ─────────────────
PLOT_STYLE_LIGHT = {
    'figure.facecolor':  '#ffffff',
    'axes.facecolor':    '#ffffff',
    'axes.edgecolor':    '#333333',
    'axes.labelcolor':   '#1a1a2e',
    'text.color':        '#1a1a2e',
    'xtick.color':       '#333333',
    'ytick.color':       '#333333',
    'xtick.labelsize':   7,
    'ytick.labelsize':   7,
    'axes.labelsize':    8,
    'axes.titlesize':    9,
    'grid.color':        '#cccccc',
}

# ── Export / light-theme colours ─────────────────────────────────────────
EXPORT_TEXT_COLOR = '#333333'
EXPORT_HEADER_BG = '#0ea5e9'
EXPORT_HEADER_FG = '#ffffff'
EXPORT_STRIPE_BG = '#f0f9ff'
