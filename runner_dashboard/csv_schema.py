"""
Header normalization and row validation for running-log CSV files.

Two headers name the same field when their normalized forms are equal:
``"Miles_Run"``, ``"miles run"`` and ``"  MILES   RUN "`` all normalize
to ``"miles run"``.  The accepted names for each required field live in
``constants.FIELD_ALIASES`` and are shared by the header check and by
row extraction.

Nothing in this module raises on malformed data.  A row that cannot
yield a usable ``ValidatedRow`` is reported as ``None`` and is simply
left out of the statistics.
"""

import math
import re
from typing import Any, Dict, Iterable, Mapping, Optional

from .constants import FIELD_ALIASES, FIELD_DATE, FIELD_MILES, FIELD_PERSON, REQUIRED_FIELDS
from .data_model import SchemaCheck, ValidatedRow

_SEPARATOR_RUN = re.compile(r"[_\s]+")

# Plain decimal notation: optional sign, digits with optional fraction
# (or a bare fraction), optional exponent.  Rejects "1_000", "0x10",
# "inf" and friends that ``float()`` would otherwise accept.
_DECIMAL = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")

_ASCII_LOWER = str.maketrans(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ",
    "abcdefghijklmnopqrstuvwxyz",
)


def normalize_header(header: Any) -> str:
    """Reduce a raw CSV header to its comparable key form.

    Lower-cases ASCII letters, collapses every run of underscores and
    whitespace into one space and trims the ends.  Idempotent.

    >>> normalize_header("  MILES__ run ")
    'miles run'
    """
    text = str(header).translate(_ASCII_LOWER)
    return _SEPARATOR_RUN.sub(" ", text).strip(" ")


def _present_fields(normalized: Iterable[str]) -> set:
    seen = set(normalized)
    return {
        name for name in REQUIRED_FIELDS
        if any(alias in seen for alias in FIELD_ALIASES[name])
    }


def check_schema(headers: Iterable[Any]) -> SchemaCheck:
    """Check that every required field appears among *headers*.

    Order of *headers* is irrelevant and extra columns are allowed.  A
    field counts as present when its canonical name or one of its
    aliases matches a normalized header.

    Returns
    -------
    SchemaCheck
        ``missing`` holds canonical names in ``REQUIRED_FIELDS`` order.
    """
    present = _present_fields(normalize_header(h) for h in headers)
    missing = tuple(name for name in REQUIRED_FIELDS if name not in present)
    return SchemaCheck(ok=not missing, missing=missing)


def parse_miles(value: Any) -> Optional[float]:
    """Parse a miles cell; ``None`` unless it is a finite decimal."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if not _DECIMAL.match(text):
            return None
        number = float(text)
    if not math.isfinite(number):
        return None
    return number


def _lookup(by_key: Dict[str, Any], field_name: str) -> Any:
    for alias in FIELD_ALIASES[field_name]:
        value = by_key.get(alias)
        if value is not None and str(value).strip() != "":
            return value
    return None


def extract_row(raw: Mapping[str, Any]) -> Optional[ValidatedRow]:
    """Extract ``(date, person, miles)`` from one raw row.

    Keys of *raw* are normalized at lookup time; when two keys normalize
    to the same name the first one wins.  The canonical name is tried
    before its aliases, and a blank cell falls through to the next alias.

    Returns ``None`` when date or person is blank after trimming, or
    when miles is not a finite number.
    """
    by_key: Dict[str, Any] = {}
    for key, value in raw.items():
        by_key.setdefault(normalize_header(key), value)

    date = _lookup(by_key, FIELD_DATE)
    person = _lookup(by_key, FIELD_PERSON)
    if date is None or person is None:
        return None

    miles = parse_miles(_lookup(by_key, FIELD_MILES))
    if miles is None:
        return None

    return ValidatedRow(date=str(date).strip(), person=str(person).strip(), miles=miles)
