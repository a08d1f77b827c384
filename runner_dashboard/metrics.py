"""
Mileage statistics for the Runner Log Dashboard.

Pure functions over an ordered collection of ``ValidatedRow``.  Every
call recomputes from scratch; nothing here keeps state between calls,
so feeding the same rows in one batch or in several chunks gives
identical results.

Empty input never raises: overall statistics fall back to the zero
sentinel ``OverallStats()`` (``count == 0``) and the grouped views are
empty lists.
"""

from collections import OrderedDict
from operator import attrgetter
from typing import Iterable, List, Mapping, Sequence, Tuple

import numpy as np

from .csv_schema import extract_row
from .data_model import (
    DailyTrendPoint, DashboardMetrics, OverallStats, PersonStats, ValidatedRow,
)


def _summarize(values: Sequence[float]) -> Tuple[float, float, float, float]:
    """Return ``(total, avg, min, max)`` of a non-empty sequence."""
    arr = np.asarray(values, dtype=np.float64)
    total = float(arr.sum())
    lo = float(arr.min())
    hi = float(arr.max())
    # Keep min <= avg <= max under floating-point rounding.
    avg = min(max(total / arr.size, lo), hi)
    return total, avg, lo, hi


def validated_rows(raw_rows: Iterable[Mapping[str, object]]) -> List[ValidatedRow]:
    """Extract usable rows, preserving order and skipping the rest."""
    result = []
    for raw in raw_rows:
        row = extract_row(raw)
        if row is not None:
            result.append(row)
    return result


def compute_overall(rows: Sequence[ValidatedRow]) -> OverallStats:
    """Total, average, min and max miles over every row."""
    if not rows:
        return OverallStats()
    total, avg, lo, hi = _summarize([r.miles for r in rows])
    return OverallStats(total=total, avg=avg, min=lo, max=hi, count=len(rows))


def compute_per_person(rows: Sequence[ValidatedRow]) -> List[PersonStats]:
    """Per-runner statistics, highest average first.

    Names are grouped exactly (case-sensitive).  Runners with equal
    averages keep the order in which they first appear.
    """
    grouped: "OrderedDict[str, List[float]]" = OrderedDict()
    for row in rows:
        grouped.setdefault(row.person, []).append(row.miles)

    stats = []
    for name, miles in grouped.items():
        _, avg, lo, hi = _summarize(miles)
        stats.append(PersonStats(name=name, avg=avg, min=lo, max=hi, count=len(miles)))
    return sorted(stats, key=attrgetter('avg'), reverse=True)


def compute_daily_trend(rows: Sequence[ValidatedRow]) -> List[DailyTrendPoint]:
    """Miles summed per date, ordered by the date string.

    Ordering is plain string comparison, which is chronological only
    for zero-padded ISO ``YYYY-MM-DD`` dates.
    """
    totals = {}
    for row in rows:
        totals[row.date] = totals.get(row.date, 0.0) + row.miles
    return [
        DailyTrendPoint(date=date, total_miles=totals[date])
        for date in sorted(totals)
    ]


def compute_metrics(raw_rows: Sequence[Mapping[str, object]]) -> DashboardMetrics:
    """Extract *raw_rows* and compute every derived view."""
    rows = validated_rows(raw_rows)
    return DashboardMetrics(
        overall=compute_overall(rows),
        per_person=compute_per_person(rows),
        daily_trend=compute_daily_trend(rows),
        row_count=len(raw_rows),
        valid_count=len(rows),
    )
