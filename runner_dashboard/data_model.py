"""
Data model for the Runner Log Dashboard.

A raw row is a plain ``dict`` of header → cell text, exactly as decoded
from one CSV line; every numeric interpretation happens later, inside
``csv_schema.extract_row``.  Everything derived from the raw rows is an
immutable dataclass so that chart renderers and exports receive it
read-only.

Empty input is modelled with zeros, never ``NaN``: ``OverallStats``
with ``count == 0`` is the "no data" sentinel.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Tuple

RawRow = Dict[str, str]


@dataclass(frozen=True)
class ValidatedRow:
    """One usable log entry extracted from a raw row.

    Parameters
    ----------
    date : str
        Date text, trimmed.  Compared as a string, never parsed.
    person : str
        Runner name, trimmed.  Grouping is exact and case-sensitive.
    miles : float
        Finite distance value.
    """
    date: str
    person: str
    miles: float


@dataclass(frozen=True)
class SchemaCheck:
    """Outcome of a header-presence check.

    ``missing`` lists canonical field names in required order and is
    empty when ``ok`` is ``True``.
    """
    ok: bool
    missing: Tuple[str, ...] = ()


@dataclass(frozen=True)
class OverallStats:
    """Summary over every validated miles value."""
    total: float = 0.0
    avg: float = 0.0
    min: float = 0.0
    max: float = 0.0
    count: int = 0

    @property
    def has_data(self) -> bool:
        return self.count > 0


@dataclass(frozen=True)
class PersonStats:
    """Mileage statistics for one runner."""
    name: str
    avg: float
    min: float
    max: float
    count: int


@dataclass(frozen=True)
class DailyTrendPoint:
    """Total miles logged on one date."""
    date: str
    total_miles: float


@dataclass(frozen=True)
class DashboardMetrics:
    """All derived views for one snapshot of the row collection.

    Parameters
    ----------
    overall : OverallStats
    per_person : list of PersonStats
        Sorted by descending average, ties in first-seen order.
    daily_trend : list of DailyTrendPoint
        Sorted ascending by the date string.
    row_count : int
        Number of raw rows in the snapshot, valid or not.
    valid_count : int
        Number of rows that survived extraction.
    """
    overall: OverallStats = field(default_factory=OverallStats)
    per_person: List[PersonStats] = field(default_factory=list)
    daily_trend: List[DailyTrendPoint] = field(default_factory=list)
    row_count: int = 0
    valid_count: int = 0

    @property
    def skipped_count(self) -> int:
        return self.row_count - self.valid_count
