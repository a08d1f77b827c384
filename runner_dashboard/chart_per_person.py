"""
Per-person mileage chart for the Runner Log Dashboard.

One bar per runner showing average miles, in the order produced by
``metrics.compute_per_person`` (highest average first).  A thin vertical
line through each bar spans that runner's min-max range.
"""

from typing import Sequence

import numpy as np
from matplotlib.figure import Figure

from .constants import CHART_PALETTE, DARK_COLORS, EXPORT_TEXT_COLOR
from .data_model import PersonStats

# Beyond this many runners the x labels are rotated
_ROTATE_LABELS_AFTER = 8


def render_per_person(
    fig: Figure,
    per_person: Sequence[PersonStats],
    *,
    for_export: bool = False,
) -> None:
    """Render the average-miles-per-person bar chart on *fig*.

    Parameters
    ----------
    fig : matplotlib.figure.Figure
        Figure to draw on (will be cleared).
    per_person : sequence of PersonStats
        Already sorted for display.
    for_export : bool
        If ``True``, use light-theme text colours.
    """
    fig.clf()
    pal = CHART_PALETTE
    ax = fig.add_subplot(111)

    if not per_person:
        ax.text(0.5, 0.5, 'No valid data points',
                transform=ax.transAxes, ha='center', va='center',
                color=pal['no_data_text'])
        ax.set_axis_off()
        return

    names = [p.name for p in per_person]
    avgs = np.array([p.avg for p in per_person])
    mins = np.array([p.min for p in per_person])
    maxs = np.array([p.max for p in per_person])
    x = np.arange(len(names))

    ax.bar(x, avgs, width=0.6, color=pal['bar'], edgecolor=pal['bar_edge'],
           linewidth=0.6, zorder=3, label='Average')
    ax.vlines(x, mins, maxs, color=pal['range_line'], linewidth=1.0,
              zorder=4, label='Min/max range')

    # ── Value labels ─────────────────────────────────────────────────
    text_color = EXPORT_TEXT_COLOR if for_export else DARK_COLORS['fg']
    for xi, avg in zip(x, avgs):
        ax.annotate(f"{avg:.2f}", (xi, avg), xytext=(0, 3),
                    textcoords='offset points', ha='center', va='bottom',
                    fontsize=6, color=text_color)

    # ── Labels ───────────────────────────────────────────────────────
    ax.set_xticks(x)
    if len(names) > _ROTATE_LABELS_AFTER:
        ax.set_xticklabels(names, fontsize=6, rotation=45, ha='right')
    else:
        ax.set_xticklabels(names, fontsize=7)
    ax.set_ylim(bottom=min(0.0, float(mins.min())))
    ax.set_xlabel("Person", fontsize=8)
    ax.set_ylabel("Miles", fontsize=8)
    ax.set_title("Average Miles per Person", fontsize=10, fontweight='bold')
    ax.grid(axis='y', linewidth=0.4, alpha=0.5)
    ax.legend(fontsize=6, framealpha=0.9, loc='upper right')

    fig.tight_layout(pad=1.5)
