"""
Batch ingestion: uploaded files in, partitioned tier-1/tier-2/unrecognized results out.

Each file runs through read -> locate header -> classify -> aggregate or
tabulate on its own; nothing is shared between files, so files may be handled
on a thread pool. A failure reading one file or one archive member becomes an
unrecognized result carrying ``error`` and never stops the batch.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Any, Iterable, Sequence

from ads_ingest.aggregators import TIER1_AGGREGATORS
from ads_ingest.classifier import classify_sheet
from ads_ingest.config import IngestSettings
from ads_ingest.contracts import utc_now_iso
from ads_ingest.loader import (
    ARCHIVE_FORMATS,
    EXCEL_FORMATS,
    archive_members,
    ensure_supported,
    extension_of,
    member_name,
    open_archive,
    read_delimited,
    read_workbook_sheets,
)
from ads_ingest.models import (
    BatchResult,
    BatchSummary,
    IngestResult,
    MatchedSheet,
    Tier1Result,
    Tier2Result,
    UnrecognizedResult,
    UploadedFile,
)
from ads_ingest.signatures import DEFAULT_REGISTRY, DETAIL_REPORTS, SignatureRegistry
from ads_ingest.tabulator import tabulate

logger = logging.getLogger(__name__)

NO_DATA_ROWS = "No data rows"


def describe_failure(exc: Exception) -> str:
    return str(exc) or type(exc).__name__


def build_results(match: MatchedSheet, *, uploaded_at: str | None = None) -> list[IngestResult]:
    """Turn a classified sheet into its tier-1 and/or tier-2 results."""
    signature = match.signature
    aggregator = TIER1_AGGREGATORS.get(signature.id) if signature.tier == 1 else None

    if aggregator is None:
        return [
            tabulate(
                match.data_rows,
                match.headers,
                signature,
                file_name=match.file_name,
                uploaded_at=uploaded_at,
            )
        ]

    aggregate = aggregator(match.data_rows, match.headers)
    results: list[IngestResult] = [
        Tier1Result(
            report_type=signature.id,
            platform=signature.platform,
            label=signature.label,
            records=aggregate.records,
            meta={**aggregate.meta, "label": signature.label},
            file_name=match.file_name,
        )
    ]

    # Line-item platforms keep the per-ad rows too.
    detail = DETAIL_REPORTS.get(signature.id)
    if detail is not None:
        report_type, label = detail
        results.append(
            tabulate(
                match.data_rows,
                match.headers,
                signature.as_tier2(report_type, label),
                file_name=match.file_name,
                uploaded_at=uploaded_at,
            )
        )
    return results


def parse_sheet(
    rows: Sequence[Sequence[Any]],
    file_name: str,
    *,
    registry: SignatureRegistry = DEFAULT_REGISTRY,
    settings: IngestSettings | None = None,
    uploaded_at: str | None = None,
) -> list[IngestResult]:
    settings = settings or IngestSettings()
    classified = classify_sheet(
        rows,
        file_name,
        registry=registry,
        max_scan=settings.header_scan_rows,
    )
    if isinstance(classified, UnrecognizedResult):
        return [classified]
    return build_results(classified, uploaded_at=uploaded_at)


def parse_content(
    name: str,
    raw: bytes | str,
    *,
    registry: SignatureRegistry = DEFAULT_REGISTRY,
    settings: IngestSettings | None = None,
    uploaded_at: str | None = None,
) -> list[IngestResult]:
    """Parse one delimited file or workbook held in memory."""
    suffix = extension_of(name)
    if suffix in EXCEL_FORMATS:
        if isinstance(raw, str):
            raise ValueError(f"Expected binary content for workbook {name}")
        results: list[IngestResult] = []
        for sheet in read_workbook_sheets(raw, suffix, source_name=name):
            results.extend(
                parse_sheet(
                    sheet.rows,
                    sheet.source_name,
                    registry=registry,
                    settings=settings,
                    uploaded_at=uploaded_at,
                )
            )
        return results

    rows = read_delimited(raw, suffix)
    if len(rows) < 2:
        return [UnrecognizedResult(file_name=name, row_count=0, error=NO_DATA_ROWS)]
    return parse_sheet(rows, name, registry=registry, settings=settings, uploaded_at=uploaded_at)


def parse_archive(
    raw: bytes,
    *,
    registry: SignatureRegistry = DEFAULT_REGISTRY,
    settings: IngestSettings | None = None,
    uploaded_at: str | None = None,
) -> list[IngestResult]:
    """Classify every report member of a zip archive, isolating member failures."""
    results: list[IngestResult] = []
    with open_archive(raw) as archive:
        for member in archive_members(archive):
            name = member_name(member)
            try:
                content = archive.read(member)
                results.extend(
                    parse_content(
                        name,
                        content,
                        registry=registry,
                        settings=settings,
                        uploaded_at=uploaded_at,
                    )
                )
            except Exception as exc:
                logger.warning("Failed to parse archive member %s: %s", member.filename, exc)
                results.append(UnrecognizedResult(file_name=name, error=describe_failure(exc)))
    return results


def parse_file(
    upload: UploadedFile,
    *,
    registry: SignatureRegistry = DEFAULT_REGISTRY,
    settings: IngestSettings | None = None,
    uploaded_at: str | None = None,
) -> list[IngestResult]:
    """
    Read and classify one uploaded file.

    Raises:
        ValueError   for unsupported or unreadable content.
        ImportError  when an optional engine (xlrd) is missing.
        OSError      when a path-backed upload cannot be read.
    """
    suffix = ensure_supported(upload.name)
    raw = upload.read_bytes()
    if suffix in ARCHIVE_FORMATS:
        return parse_archive(raw, registry=registry, settings=settings, uploaded_at=uploaded_at)
    return parse_content(upload.name, raw, registry=registry, settings=settings, uploaded_at=uploaded_at)


def _as_upload(item: "UploadedFile | str | Path") -> UploadedFile:
    if isinstance(item, UploadedFile):
        return item
    return UploadedFile.from_path(item)


def _process_one(
    upload: UploadedFile,
    registry: SignatureRegistry,
    settings: IngestSettings,
    uploaded_at: str,
) -> list[IngestResult]:
    try:
        logger.info("Processing %s", upload.name)
        return parse_file(upload, registry=registry, settings=settings, uploaded_at=uploaded_at)
    except Exception as exc:
        logger.warning("Failed to process %s: %s", upload.name, exc)
        return [UnrecognizedResult(file_name=upload.name, error=describe_failure(exc))]


def summarize(results: Sequence[IngestResult], files_processed: int) -> BatchSummary:
    tier1 = [result for result in results if result.tier == 1]
    tier2 = [result for result in results if result.tier == 2]
    unrecognized = [result for result in results if result.unrecognized]

    platforms: list[str] = []
    report_types: list[dict[str, Any]] = []
    for result in results:
        if isinstance(result, UnrecognizedResult):
            continue
        if result.platform and result.platform not in platforms:
            platforms.append(result.platform)
        report_types.append(
            {
                "type": result.report_type,
                "label": result.label,
                "platform": result.platform,
                "tier": result.tier,
                "file_name": result.file_name,
            }
        )

    return BatchSummary(
        total_results=len(results),
        tier1=len(tier1),
        tier2=len(tier2),
        unrecognized=len(unrecognized),
        files_processed=files_processed,
        platforms=platforms,
        report_types=report_types,
    )


def process_files(
    files: Iterable["UploadedFile | str | Path"],
    *,
    settings: IngestSettings | None = None,
    registry: SignatureRegistry = DEFAULT_REGISTRY,
    now: str | None = None,
) -> BatchResult:
    """
    Run the whole ingestion pipeline over a batch of uploads.

    Args:
        files:     UploadedFile objects, or paths read from disk.
        settings:  Thread-pool and header-scan settings.
        registry:  Signature registry used for classification.
        now:       Upload timestamp stamped on tier-2 meta (defaults to now, UTC).

    Results keep the order of ``files`` whether or not a thread pool is used.
    """
    settings = settings or IngestSettings()
    uploads = [_as_upload(item) for item in files]
    uploaded_at = now or utc_now_iso()

    per_file: list[list[IngestResult]] = [[] for _ in uploads]
    if settings.use_threads and len(uploads) > 1:
        max_workers = max(1, min(settings.max_workers, len(uploads)))
        logger.info("Using parallel processing with %d workers for %d files", max_workers, len(uploads))
        # Each file is processed independently; slots keep input order.
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {
                executor.submit(_process_one, upload, registry, settings, uploaded_at): index
                for index, upload in enumerate(uploads)
            }
            for future in as_completed(futures):
                per_file[futures[future]] = future.result()
    else:
        for index, upload in enumerate(uploads):
            per_file[index] = _process_one(upload, registry, settings, uploaded_at)

    results = [result for file_results in per_file for result in file_results]
    summary = summarize(results, len(uploads))
    logger.info(
        "Processed %d files: %d tier-1, %d tier-2, %d unrecognized",
        summary.files_processed,
        summary.tier1,
        summary.tier2,
        summary.unrecognized,
    )
    return BatchResult(
        tier1_results=[result for result in results if isinstance(result, Tier1Result)],
        tier2_results=[result for result in results if isinstance(result, Tier2Result)],
        unrecognized=[result for result in results if isinstance(result, UnrecognizedResult)],
        summary=summary,
    )
