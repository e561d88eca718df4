"""
Header-row location and report classification.

Exports put the real header anywhere in the first few rows (title and
filter rows come first in Google/Meta workbooks), and header spellings drift
between exports, so matching is by fragment containment rather than equality:
a fragment matches a header when either string contains the other.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time
from typing import Any, Sequence

from ads_ingest.config import HEADER_SCAN_ROWS, METADATA_ROW_MARKERS, UNRECOGNIZED_HEADER_SAMPLE
from ads_ingest.models import ClassificationResult, MatchedSheet, ParsedSheet, UnrecognizedResult
from ads_ingest.signatures import DEFAULT_REGISTRY, ReportSignature, SignatureRegistry

logger = logging.getLogger(__name__)

REQUIRED_WEIGHT = 10


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M:%S")
    if isinstance(value, date):
        return value.strftime("%Y-%m-%d")
    if isinstance(value, time):
        return value.strftime("%H:%M:%S")
    return str(value).strip()


def normalize_headers(row: Sequence[Any]) -> list[str]:
    return [to_text(value) for value in row]


def fragment_matches(fragment: str, headers: Sequence[str]) -> bool:
    # Blank header cells would be "contained" in every fragment.
    return any(header and (fragment in header or header in fragment) for header in headers)


def score_signature(signature: ReportSignature, headers: Sequence[str]) -> int | None:
    """Score ``headers`` against one signature; ``None`` unless every required fragment matches."""
    required_hits = sum(1 for fragment in signature.required if fragment_matches(fragment, headers))
    if required_hits != len(signature.required):
        return None
    optional_hits = sum(1 for fragment in signature.optional if fragment_matches(fragment, headers))
    return required_hits * REQUIRED_WEIGHT + optional_hits


def classify_headers(
    headers: Sequence[Any],
    registry: SignatureRegistry = DEFAULT_REGISTRY,
) -> ReportSignature | None:
    """Return the best-scoring signature for a header row, or ``None``.

    Ties keep the signature that comes first in registry order.
    """
    if not headers:
        return None
    normalized = normalize_headers(headers)

    best_match: ReportSignature | None = None
    best_score = 0
    for signature in registry:
        score = score_signature(signature, normalized)
        if score is not None and score > best_score:
            best_score = score
            best_match = signature
    return best_match


def locate_header_row(rows: Sequence[Sequence[Any]], max_scan: int = HEADER_SCAN_ROWS) -> int:
    """Index of the densest row among the first ``max_scan`` rows (earliest wins ties)."""
    best_row = 0
    best_count = 0
    for index, row in enumerate(rows[:max_scan]):
        if not row:
            continue
        count = sum(1 for value in row if not is_blank(value))
        if count > best_count:
            best_count = count
            best_row = index
    return best_row


def has_metadata_markers(headers: Sequence[str]) -> bool:
    return any(marker in header for header in headers for marker in METADATA_ROW_MARKERS)


def split_header(rows: Sequence[Sequence[Any]], max_scan: int = HEADER_SCAN_ROWS) -> ParsedSheet:
    index = locate_header_row(rows, max_scan)
    return ParsedSheet(
        headers=normalize_headers(rows[index]),
        rows=[list(row) for row in rows[index + 1:]],
        header_row_index=index,
    )


def classify_sheet(
    rows: Sequence[Sequence[Any]],
    file_name: str,
    *,
    registry: SignatureRegistry = DEFAULT_REGISTRY,
    max_scan: int = HEADER_SCAN_ROWS,
) -> ClassificationResult:
    """
    Locate the header row of a raw sheet and classify it.

    Search Query Performance exports put a ``Brand=... Reporting Range=...``
    row above the header; when the located row carries those markers, row 1
    is the header and data starts at row 2. If that reading does not classify,
    the located row is tried as-is before giving up.
    """
    located = split_header(rows, max_scan)
    parsed = located

    if has_metadata_markers(located.headers) and len(rows) > 2:
        parsed = ParsedSheet(
            headers=normalize_headers(rows[1]),
            rows=[list(row) for row in rows[2:]],
            header_row_index=1,
        )

    signature = classify_headers(parsed.headers, registry)
    if signature is None and parsed is not located:
        signature = classify_headers(located.headers, registry)
        if signature is not None:
            parsed = located

    if signature is None:
        logger.info("Unrecognized sheet %s (%d data rows)", file_name, len(parsed.rows))
        return UnrecognizedResult(
            file_name=file_name,
            headers=parsed.headers[:UNRECOGNIZED_HEADER_SAMPLE],
            row_count=len(parsed.rows),
        )

    logger.debug(
        "Classified %s as %s (header row %d, %d data rows)",
        file_name,
        signature.id,
        parsed.header_row_index,
        len(parsed.rows),
    )
    return MatchedSheet(
        signature=signature,
        headers=parsed.headers,
        data_rows=parsed.rows,
        file_name=file_name,
    )
