"""
Daily mileage trend chart for the Runner Log Dashboard.

Line chart of total miles per date.  Dates are plotted as categorical
labels in the order given (string order from
``metrics.compute_daily_trend``), not on a calendar axis, so gaps
between days are not drawn to scale.
"""

from typing import Sequence

import numpy as np
from matplotlib.figure import Figure

from .constants import CHART_PALETTE
from .data_model import DailyTrendPoint

# Show at most this many x tick labels; the rest are thinned out
_MAX_TICK_LABELS = 15


def render_daily_trend(
    fig: Figure,
    trend: Sequence[DailyTrendPoint],
    *,
    for_export: bool = False,
) -> None:
    """Render the daily miles trend on *fig* (cleared first)."""
    fig.clf()
    pal = CHART_PALETTE
    ax = fig.add_subplot(111)

    if not trend:
        ax.text(0.5, 0.5, 'No valid data points',
                transform=ax.transAxes, ha='center', va='center',
                color=pal['no_data_text'])
        ax.set_axis_off()
        return

    dates = [p.date for p in trend]
    totals = np.array([p.total_miles for p in trend])
    x = np.arange(len(dates))

    ax.plot(
        x, totals,
        color=pal['trend_line'], linewidth=2.0 if not for_export else 1.2,
        marker='o', markersize=4 if len(x) <= 60 else 0,
        markerfacecolor=pal['trend_marker'], markeredgecolor='white',
        markeredgewidth=0.3, zorder=3,
    )

    # ── Tick thinning ────────────────────────────────────────────────
    step = max(1, int(np.ceil(len(dates) / _MAX_TICK_LABELS)))
    ticks = x[::step]
    ax.set_xticks(ticks)
    ax.set_xticklabels([dates[i] for i in ticks], fontsize=6,
                       rotation=45, ha='right')
    ax.set_xlim(-0.5, len(dates) - 0.5)
    ax.set_ylim(bottom=min(0.0, float(totals.min())))

    ax.set_xlabel("Date", fontsize=8)
    ax.set_ylabel("Total Miles", fontsize=8)
    ax.set_title("Daily Miles Trend", fontsize=10, fontweight='bold')
    ax.grid(linewidth=0.4, alpha=0.5)

    fig.tight_layout(pad=1.5)
