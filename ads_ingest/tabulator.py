"""Tier-2 tabulation: classified rows to header-keyed records plus summary meta."""

from __future__ import annotations

from typing import Any, Sequence

from ads_ingest.config import DATE_HEADERS, SPEND_HEADERS
from ads_ingest.contracts import utc_now_iso
from ads_ingest.models import Tier2Result
from ads_ingest.normalizers import to_iso_date, to_number
from ads_ingest.signatures import ReportSignature


def _clean_header(value: Any) -> str:
    return str(value if value is not None else "").strip()


def find_column(headers: Sequence[str], spellings: frozenset[str]) -> int | None:
    """First header whose lower-cased text is one of ``spellings``."""
    for index, header in enumerate(headers):
        if header.lower() in spellings:
            return index
    return None


def tabulate(
    data_rows: Sequence[Sequence[Any]],
    headers: Sequence[Any],
    signature: ReportSignature,
    *,
    file_name: str = "",
    uploaded_at: str | None = None,
) -> Tier2Result:
    """
    Convert every data row into a dict keyed by its trimmed header.

    Cell values are passed through untouched; only the ``meta`` totals apply
    numeric and date cleanup. Blank header positions are left out of the
    records, and a repeated header keeps the value of its last column.
    """
    cleaned = [_clean_header(header) for header in headers]
    spend_col = find_column(cleaned, SPEND_HEADERS)
    date_col = find_column(cleaned, DATE_HEADERS)

    records: list[dict[str, Any]] = []
    total_spend = 0.0
    dates: set[str] = set()
    for row in data_rows:
        record = {}
        for index, key in enumerate(cleaned):
            if key:
                record[key] = row[index] if index < len(row) else None
        records.append(record)

        if spend_col is not None and spend_col < len(row):
            total_spend += to_number(row[spend_col])
        if date_col is not None and date_col < len(row):
            day = to_iso_date(row[date_col])
            if day:
                dates.add(day)

    meta = {
        "type": signature.id,
        "platform": signature.platform,
        "tier": 2,
        "label": signature.label,
        "rows": len(records),
        "columns": len(cleaned),
        "date_range": sorted(dates) or None,
        "total_spend": total_spend if spend_col is not None else None,
        "uploaded_at": uploaded_at or utc_now_iso(),
    }
    return Tier2Result(
        report_type=signature.id,
        platform=signature.platform,
        label=signature.label,
        records=records,
        headers=[header for header in cleaned if header],
        meta=meta,
        file_name=file_name,
    )
