"""
Export utilities for the Runner Log Dashboard.

- ``rows_to_csv`` / ``export_csv``: the raw row collection, every
  column included, back as CSV text.
- ``export_pdf_report``: title, the four summary figures and a
  paginated table of every raw row, via matplotlib's PDF backend.
  Long cell values wrap onto further lines; nothing is cut off.
- ``export_chart_png``: one chart re-rendered in the light export theme.

Exports always render onto fresh ``Figure`` objects, so the figures
shown in the GUI are never touched.
"""

import csv
import io
import logging
import os
import textwrap
from datetime import datetime
from typing import Callable, Iterator, List, Mapping, Optional, Sequence, Tuple

import matplotlib as mpl
from matplotlib.backends.backend_pdf import PdfPages
from matplotlib.figure import Figure

from . import APP_NAME, APP_VERSION
from .constants import (
    EXPORT_DPI, EXPORT_HEADER_BG, EXPORT_HEADER_FG, EXPORT_STRIPE_BG,
    EXPORT_TEXT_COLOR, EXPORT_WIDTH_INCHES, PDF_PAGE_SIZE_INCHES,
    PDF_LINES_PER_PAGE, PDF_REPORT_TITLE, PDF_TABLE_LINE_CHARS,
    PLOT_STYLE_LIGHT,
)
from .data_model import OverallStats

logger = logging.getLogger(__name__)

# Table lines given up on the first PDF page to the title and summary block
_FIRST_PAGE_HEADER_LINES = 10
# Narrowest wrap width for a single column
_PDF_MIN_WRAP_CHARS = 12

# One table row as drawn: cell texts (with line breaks) and its height in lines
_TableRow = Tuple[List[str], int]


def _columns_for(rows: Sequence[Mapping[str, object]],
                 columns: Optional[Sequence[str]]) -> List[str]:
    if columns:
        return list(columns)
    return list(rows[0].keys()) if rows else []


def _cell_text(value: object) -> str:
    return "" if value is None else str(value)


# ── CSV ──────────────────────────────────────────────────────────────────

def rows_to_csv(rows: Sequence[Mapping[str, object]],
                columns: Optional[Sequence[str]] = None) -> str:
    """Serialise raw rows as CSV text.

    The header is *columns*, or the keys of the first row.  Fields
    containing a comma, a double quote or a line break are quoted and
    inner quotes doubled.  Returns ``""`` when there is nothing to write.
    """
    cols = _columns_for(rows, columns)
    if not cols:
        return ""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(cols)
    for row in rows:
        writer.writerow([_cell_text(row.get(c)) for c in cols])
    return buf.getvalue()


def export_csv(rows: Sequence[Mapping[str, object]], filepath: str,
               columns: Optional[Sequence[str]] = None) -> None:
    """Write raw rows to *filepath* as UTF-8 CSV."""
    with open(filepath, "w", encoding="utf-8", newline="") as fh:
        fh.write(rows_to_csv(rows, columns))
    logger.info("Exported %d rows to %s", len(rows), filepath)


# ── PDF report ───────────────────────────────────────────────────────────

def summary_lines(overall: OverallStats) -> List[str]:
    """The four summary figures, two decimals each, in report order."""
    return [
        f"Total Miles: {overall.total:.2f}",
        f"Average Miles: {overall.avg:.2f}",
        f"Max Miles: {overall.max:.2f}",
        f"Min Miles: {overall.min:.2f}",
    ]


def _wrap_width(n_cols: int) -> int:
    return max(_PDF_MIN_WRAP_CHARS, PDF_TABLE_LINE_CHARS // max(1, n_cols))


def _wrap_cell(value: object, width: int) -> List[str]:
    """Wrap one cell to *width* characters, keeping its own line breaks."""
    lines = []
    for part in _cell_text(value).splitlines() or [""]:
        lines.extend(textwrap.wrap(part, width) or [""])
    return lines


def _table_rows(rows: Sequence[Mapping[str, object]], cols: List[str],
                max_lines: int) -> Iterator[_TableRow]:
    """Wrap every row; a row taller than *max_lines* continues in the next table row."""
    width = _wrap_width(len(cols))
    for row in rows:
        wrapped = [_wrap_cell(row.get(c), width) for c in cols]
        height = max((len(w) for w in wrapped), default=1)
        for start in range(0, height, max_lines):
            stop = min(height, start + max_lines)
            yield ["\n".join(w[start:stop]) for w in wrapped], stop - start


def _paginate(table_rows: Iterator[_TableRow], per_page: int,
              first_page: int) -> List[List[_TableRow]]:
    pages: List[List[_TableRow]] = [[]]
    used, capacity = 0, first_page
    for row in table_rows:
        if pages[-1] and used + row[1] > capacity:
            pages.append([])
            used, capacity = 0, per_page
        pages[-1].append(row)
        used += row[1]
    return pages


def _draw_table(ax, cols: List[str], page: List[_TableRow], top: float) -> None:
    width = _wrap_width(len(cols))
    header = ["\n".join(_wrap_cell(c, width)) for c in cols]
    # Row heights in text lines; the bbox scales them together
    heights = [max(h.count("\n") + 1 for h in header)] + [n for _, n in page]
    height = min(top, 0.03 * sum(heights))
    table = ax.table(
        cellText=[cells for cells, _ in page], colLabels=header,
        cellLoc='left', colLoc='left',
        bbox=[0.0, top - height, 1.0, height],
    )
    table.auto_set_font_size(False)
    table.set_fontsize(6.5)
    for (r, _c), cell in table.get_celld().items():
        cell.set_height(heights[r])
        cell.set_edgecolor('#cbd5e1')
        cell.set_linewidth(0.4)
        if r == 0:
            cell.set_facecolor(EXPORT_HEADER_BG)
            cell.get_text().set_color(EXPORT_HEADER_FG)
            cell.get_text().set_fontweight('bold')
        elif r % 2 == 0:
            cell.set_facecolor(EXPORT_STRIPE_BG)


def export_pdf_report(
    rows: Sequence[Mapping[str, object]],
    overall: OverallStats,
    filepath: str,
    *,
    columns: Optional[Sequence[str]] = None,
    title: str = PDF_REPORT_TITLE,
    lines_per_page: int = PDF_LINES_PER_PAGE,
) -> int:
    """Write the PDF report and return the number of pages.

    Page one carries the title and summary figures followed by the
    first rows of the table; remaining rows continue on further pages.
    Every raw row is included, with *columns* (or the first row's keys)
    as the table header.  Cell text wraps rather than being cut, so a
    row may take several of the page's *lines_per_page* table lines; a
    row longer than a page continues on the next one.
    """
    if lines_per_page <= _FIRST_PAGE_HEADER_LINES:
        raise ValueError(
            f"lines_per_page must exceed {_FIRST_PAGE_HEADER_LINES}, "
            f"got {lines_per_page}"
        )
    first_page = lines_per_page - _FIRST_PAGE_HEADER_LINES
    cols = _columns_for(rows, columns)
    pages = _paginate(_table_rows(rows, cols, first_page),
                      lines_per_page, first_page)
    metadata = {
        'Title': title,
        'Creator': f"{APP_NAME} v{APP_VERSION}",
        'CreationDate': datetime.now(),
    }

    with mpl.rc_context(PLOT_STYLE_LIGHT), PdfPages(filepath, metadata=metadata) as pdf:
        for page_no, page in enumerate(pages, start=1):
            fig = Figure(figsize=PDF_PAGE_SIZE_INCHES)
            ax = fig.add_axes([0.06, 0.05, 0.88, 0.9])
            ax.set_axis_off()
            top = 1.0

            if page_no == 1:
                ax.text(0.0, 1.0, title, fontsize=16, fontweight='bold',
                        va='top', color=EXPORT_TEXT_COLOR)
                for i, line in enumerate(summary_lines(overall)):
                    ax.text(0.0, 0.94 - 0.035 * i, line, fontsize=10,
                            va='top', color=EXPORT_TEXT_COLOR)
                top = 0.94 - 0.035 * 4 - 0.03

            if cols and page:
                _draw_table(ax, cols, page, top)
            elif page_no == 1:
                ax.text(0.0, top, "No rows loaded.", fontsize=9,
                        va='top', color=EXPORT_TEXT_COLOR)

            fig.text(0.5, 0.02, f"Page {page_no} of {len(pages)}",
                     ha='center', fontsize=7, color=EXPORT_TEXT_COLOR)
            pdf.savefig(fig)

    logger.info("Exported %d-page report (%d rows) to %s",
                len(pages), len(rows), filepath)
    return len(pages)


# ── Chart PNG ────────────────────────────────────────────────────────────

def export_chart_png(
    render: Callable[..., None],
    data,
    filepath: str,
    *,
    dpi: int = EXPORT_DPI,
    width_inches: float = EXPORT_WIDTH_INCHES,
) -> None:
    """Re-render one chart in the light theme and save it as PNG.

    Parameters
    ----------
    render : callable
        A chart renderer, ``render(fig, data, for_export=True)``.
    data
        The view data the renderer expects.
    filepath : str
        Output path; ``.png`` is appended when missing.
    """
    if not filepath.lower().endswith('.png'):
        filepath += '.png'
    with mpl.rc_context(PLOT_STYLE_LIGHT):
        fig = Figure(figsize=(width_inches, width_inches * 0.66))
        render(fig, data, for_export=True)
        fig.savefig(
            filepath,
            dpi=dpi,
            bbox_inches='tight',
            facecolor=fig.get_facecolor(),
            edgecolor='none',
            pad_inches=0.1,
        )
    logger.info("Exported chart to %s", os.path.basename(filepath))
