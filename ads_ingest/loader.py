"""
loader.py: raw row readers for uploaded report files

Supports: .csv .tsv .xlsx .xls and .zip archives holding any of those.

Every reader returns rows exactly as exported, header unresolved:

    rows   = read_delimited(raw_bytes, ".csv")
    sheets = read_workbook_sheets(raw_bytes, ".xlsx")   # [RawSheet, ...]
    with open_archive(raw_bytes) as archive:
        for member in archive_members(archive):
            ...

Raises:
    ValueError   if the content is unreadable or the format unsupported.
    ImportError  if a required optional dependency is missing.
"""

from __future__ import annotations

import csv
import io
import logging
import posixpath
import zipfile
from typing import Any

import chardet
import pandas as pd

from ads_ingest.models import RawSheet

logger = logging.getLogger(__name__)

# ── Format groups ──────────────────────────────────────────────────────────────
TEXT_FORMATS    = {".csv", ".tsv"}
EXCEL_FORMATS   = {".xlsx", ".xls"}
ARCHIVE_FORMATS = {".zip"}
SHEET_FORMATS   = TEXT_FORMATS | EXCEL_FORMATS
ALL_FORMATS     = SHEET_FORMATS | ARCHIVE_FORMATS

DELIMITERS = {".csv": ",", ".tsv": "\t"}
ARCHIVE_SKIP_PREFIXES = ("__MACOSX", ".")
BOM = "\ufeff"


def extension_of(name: str) -> str:
    _, dot, suffix = name.rpartition(".")
    return f".{suffix.lower()}" if dot else ""


def ensure_supported(name: str) -> str:
    suffix = extension_of(name)
    if suffix not in ALL_FORMATS:
        supported = ", ".join(sorted(ALL_FORMATS))
        raise ValueError(f"Unsupported format '{suffix or name}'. Supported: {supported}")
    return suffix


# ══════════════════════════════════════════════════════════════════════════════
# ENCODING DETECTION
# ══════════════════════════════════════════════════════════════════════════════

def _detect_encoding_info(raw: bytes) -> dict:
    """
    Detect encoding from raw bytes.

    Returns dict with: detected, confidence, is_utf8.
    """
    result = chardet.detect(raw[:65536])
    detected = result.get("encoding") or "unknown"
    confidence = round(result.get("confidence") or 0.0, 2)
    return {
        "detected":   detected,
        "confidence": confidence,
        "is_utf8":    detected.upper().replace("-", "") in ("UTF8", "UTF8SIG", "ASCII"),
    }


def _read_text_safely(raw: bytes, preferred_encoding: str) -> str:
    """
    Decode raw bytes line-by-line.

    Strategy per line:
      1. Try UTF-8
      2. Try preferred_encoding (chardet result)
      3. Try latin-1
      4. CP1252 with replace (never crashes)

    Embedded null bytes are stripped.
    """
    decoded_lines: list[str] = []
    for raw_line in raw.split(b"\n"):
        decoded: str | None = None
        for enc in ("utf-8", preferred_encoding, "latin-1"):
            if not enc or enc == "unknown":
                continue
            try:
                decoded = raw_line.decode(enc)
                break
            except (LookupError, UnicodeDecodeError):
                continue
        if decoded is None:
            decoded = raw_line.decode("cp1252", errors="replace")
        decoded_lines.append(decoded.replace("\x00", ""))
    return "\n".join(decoded_lines)


def decode_text(raw: bytes | str) -> str:
    if isinstance(raw, str):
        text = raw
    else:
        info = _detect_encoding_info(raw)
        if not info["is_utf8"]:
            logger.debug("Decoding text as %s (confidence %s)", info["detected"], info["confidence"])
        text = _read_text_safely(raw, info["detected"])
    return text[1:] if text.startswith(BOM) else text


# ══════════════════════════════════════════════════════════════════════════════
# DELIMITED TEXT
# ══════════════════════════════════════════════════════════════════════════════

def parse_delimited(text: str, delimiter: str = ",") -> list[list[str]]:
    """
    Split delimited text into trimmed rows.

    Quoted fields, doubled-quote escapes and CRLF/LF line endings are
    handled by the csv module; rows whose fields are all blank are dropped.
    """
    if text.startswith(BOM):
        text = text[1:]
    reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter)
    rows = []
    for row in reader:
        trimmed = [field.strip() for field in row]
        if any(trimmed):
            rows.append(trimmed)
    return rows


def read_delimited(raw: bytes | str, suffix: str = ".csv") -> list[list[str]]:
    try:
        return parse_delimited(decode_text(raw), DELIMITERS.get(suffix, ","))
    except csv.Error as exc:
        raise ValueError(f"Could not parse {suffix} file: {exc}") from exc


# ══════════════════════════════════════════════════════════════════════════════
# WORKBOOKS
# ══════════════════════════════════════════════════════════════════════════════

def _cell_value(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, pd.Timestamp):
        return None if pd.isna(value) else value.to_pydatetime()
    if isinstance(value, float) and pd.isna(value):
        return None
    if value is pd.NaT:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _frame_rows(frame: pd.DataFrame) -> list[list[Any]]:
    rows = []
    for values in frame.itertuples(index=False, name=None):
        row = [_cell_value(value) for value in values]
        if any(value is not None for value in row):
            rows.append(row)
    return rows


def read_workbook_sheets(raw: bytes, suffix: str = ".xlsx", source_name: str = "") -> list[RawSheet]:
    """
    Read every sheet of a workbook as raw rows (``header=None``).

    Sheets with fewer than two non-blank rows are left out.
    """
    # .xls requires xlrd; give a clear error if missing.
    if suffix == ".xls":
        try:
            import xlrd  # noqa: F401
        except ImportError:
            raise ImportError(
                ".xls files require xlrd — run: pip install xlrd"
            )

    try:
        workbook = pd.ExcelFile(io.BytesIO(raw))
    except Exception as exc:
        raise ValueError(f"Could not open workbook: {exc}") from exc

    sheets: list[RawSheet] = []
    with workbook:
        for name in workbook.sheet_names:
            try:
                frame = workbook.parse(sheet_name=name, header=None, dtype=object)
            except Exception as exc:
                raise ValueError(f"Could not load sheet '{name}': {exc}") from exc
            rows = _frame_rows(frame)
            if len(rows) < 2:
                logger.debug("Skipping sheet '%s' of %s: %d rows", name, source_name, len(rows))
                continue
            sheets.append(RawSheet(source_name=f"{source_name} [{name}]", rows=rows))
    return sheets


# ══════════════════════════════════════════════════════════════════════════════
# ARCHIVES
# ══════════════════════════════════════════════════════════════════════════════

def open_archive(raw: bytes) -> zipfile.ZipFile:
    try:
        return zipfile.ZipFile(io.BytesIO(raw))
    except zipfile.BadZipFile as exc:
        raise ValueError(f"Could not open archive: {exc}") from exc


def is_archive_candidate(member: zipfile.ZipInfo) -> bool:
    name = member.filename
    if member.is_dir():
        return False
    if name.startswith(ARCHIVE_SKIP_PREFIXES) or posixpath.basename(name).startswith("."):
        return False
    return extension_of(name) in SHEET_FORMATS


def archive_members(archive: zipfile.ZipFile) -> list[zipfile.ZipInfo]:
    """Members worth classifying, in archive order."""
    members = [member for member in archive.infolist() if is_archive_candidate(member)]
    logger.debug("Archive holds %d report members", len(members))
    return members


def member_name(member: zipfile.ZipInfo) -> str:
    return posixpath.basename(member.filename)
