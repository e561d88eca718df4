"""
Cell value normalizers shared by the aggregators, tabulator and context builder.

Both functions are total: malformed input degrades to ``0`` / ``None`` instead
of raising, because report exports are inconsistent about blanks, dashes and
date spellings.
"""

from __future__ import annotations

import math
import numbers
import re
from datetime import date, datetime, timedelta, timezone
from typing import Any

import pandas as pd

NULL_TOKENS = {"", "—", "null", "-"}
NUMBER_STRIP_RE = re.compile(r"[$,%]")
NUMBER_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")

ISO_PREFIX_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
MONTH_DAY_YEAR_RE = re.compile(r"^(\w+)\s+(\d{1,2}),?\s*(\d{4})")
MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}

# Spreadsheet serial day 0 (Windows epoch, includes the 1900 leap-year quirk).
SPREADSHEET_EPOCH = date(1899, 12, 30)


def to_number(value: Any) -> float:
    """Convert a report cell to a float; blanks and garbage become ``0``."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, numbers.Real):
        number = float(value)
        return number if math.isfinite(number) else 0.0
    if isinstance(value, (date, datetime)):
        return 0.0

    text = str(value).strip()
    if text in NULL_TOKENS:
        return 0.0
    text = NUMBER_STRIP_RE.sub("", text).strip()
    if not text:
        return 0.0
    if not NUMBER_RE.fullmatch(text):
        return 0.0
    number = float(text)
    return number if math.isfinite(number) else 0.0


def _iso(year: int, month: int, day: int) -> str | None:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def _serial_to_iso(serial: float) -> str | None:
    if not math.isfinite(serial):
        return None
    # Serials outside years 1-9999 are not dates (IDs, totals).
    try:
        return (SPREADSHEET_EPOCH + timedelta(days=serial)).isoformat()
    except OverflowError:
        return None


def _timestamp_to_iso(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.date().isoformat()


def to_iso_date(value: Any) -> str | None:
    """
    Normalise a report date cell to ``YYYY-MM-DD``.

    Tried in order: spreadsheet serial numbers, native date objects, strings
    starting with ``YYYY-MM-DD``, ``"Mon D, YYYY"`` / ``"Month D, YYYY"``, then
    a general pandas parse. Returns ``None`` when nothing matches; callers skip
    such rows rather than defaulting to today.
    """
    if value is None or value is pd.NaT or value is False or value == "":
        return None
    if isinstance(value, numbers.Real) and not isinstance(value, bool):
        if value == 0:
            return None
        return _serial_to_iso(float(value))
    if isinstance(value, pd.Timestamp):
        if pd.isna(value):
            return None
        return _timestamp_to_iso(value.to_pydatetime())
    if isinstance(value, datetime):
        return _timestamp_to_iso(value)
    if isinstance(value, date):
        return value.isoformat()

    text = str(value).strip()
    if not text:
        return None

    iso_match = ISO_PREFIX_RE.match(text)
    if iso_match:
        return "-".join(iso_match.groups())

    mdy_match = MONTH_DAY_YEAR_RE.match(text)
    if mdy_match:
        month = MONTHS.get(mdy_match.group(1).lower()[:3])
        if month:
            parsed = _iso(int(mdy_match.group(3)), month, int(mdy_match.group(2)))
            if parsed:
                return parsed

    try:
        parsed = pd.to_datetime(text, errors="coerce")
    except (ValueError, TypeError, OverflowError):
        return None
    if parsed is None or pd.isna(parsed):
        return None
    return _timestamp_to_iso(parsed.to_pydatetime())
