from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Union

from ads_ingest.signatures import ReportSignature


@dataclass
class UploadedFile:
    """One uploaded file: in-memory ``content`` or a ``path`` read on demand."""

    name: str
    content: bytes | str | None = None
    path: Path | None = None

    @classmethod
    def from_path(cls, path) -> "UploadedFile":
        path = Path(path)
        return cls(name=path.name, path=path)

    @property
    def extension(self) -> str:
        _, dot, suffix = self.name.rpartition(".")
        return f".{suffix.lower()}" if dot else ""

    def read_bytes(self) -> bytes:
        if self.content is None:
            if self.path is None:
                raise ValueError(f"No content or path supplied for {self.name}")
            return Path(self.path).read_bytes()
        if isinstance(self.content, str):
            return self.content.encode("utf-8")
        return bytes(self.content)


@dataclass
class RawSheet:
    """Rows exactly as read from a file or workbook sheet, header unresolved."""

    source_name: str
    rows: list[list[Any]]


@dataclass
class ParsedSheet:
    headers: list[str]
    rows: list[list[Any]]
    header_row_index: int = 0


# ── Classification results ────────────────────────────────────────────────────

@dataclass
class MatchedSheet:
    signature: ReportSignature
    headers: list[str]
    data_rows: list[list[Any]]
    file_name: str


@dataclass
class UnrecognizedResult:
    file_name: str
    headers: list[str] = field(default_factory=list)
    row_count: int = 0
    error: str | None = None

    unrecognized = True
    tier = None

    def to_dict(self) -> dict[str, Any]:
        payload = {
            "unrecognized": True,
            "file_name": self.file_name,
            "headers": list(self.headers),
            "row_count": self.row_count,
        }
        if self.error:
            payload["error"] = self.error
        return payload


ClassificationResult = Union[MatchedSheet, UnrecognizedResult]


# ── Tier-1 daily records (tagged by platform) ─────────────────────────────────

@dataclass(frozen=True)
class AmazonDailyRecord:
    """One pre-aggregated Amazon ads day; every field copied from its row."""

    date: str
    spend: float = 0.0
    revenue: float = 0.0
    orders: float = 0.0
    conversions: float = 0.0
    roas: float = 0.0
    acos: float = 0.0
    impressions: float = 0.0
    clicks: float = 0.0
    ctr: float = 0.0
    cpc: float = 0.0
    conv_rate: float = 0.0
    tacos: float = 0.0
    total_units: float = 0.0
    total_revenue: float = 0.0

    platform = "amazon"

    def metrics(self) -> dict[str, float]:
        values = asdict(self)
        values.pop("date")
        return values


@dataclass(frozen=True)
class AdsDailyRecord:
    """One folded Google or Meta ads day: raw sums plus rates derived once."""

    platform: str
    date: str
    spend: float = 0.0
    impressions: float = 0.0
    clicks: float = 0.0
    conversions: float = 0.0
    conversion_value: float = 0.0
    cpc: float = 0.0
    ctr: float = 0.0
    cpm: float = 0.0
    cost_per_conversion: float = 0.0
    roas: float = 0.0

    def metrics(self) -> dict[str, float]:
        values = asdict(self)
        values.pop("date")
        values.pop("platform")
        return values


Tier1Record = Union[AmazonDailyRecord, AdsDailyRecord]


# ── Parsed results handed to the caller ───────────────────────────────────────

@dataclass
class Tier1Result:
    report_type: str
    platform: str
    label: str
    records: dict[str, Tier1Record]
    meta: dict[str, Any]
    file_name: str

    tier = 1
    unrecognized = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "tier": 1,
            "report_type": self.report_type,
            "platform": self.platform,
            "label": self.label,
            "data": {day: asdict(record) for day, record in sorted(self.records.items())},
            "meta": dict(self.meta),
            "file_name": self.file_name,
        }


@dataclass
class Tier2Result:
    report_type: str
    platform: str
    label: str
    records: list[dict[str, Any]]
    headers: list[str]
    meta: dict[str, Any]
    file_name: str

    tier = 2
    unrecognized = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "tier": 2,
            "report_type": self.report_type,
            "platform": self.platform,
            "label": self.label,
            "data": [dict(record) for record in self.records],
            "headers": list(self.headers),
            "meta": dict(self.meta),
            "file_name": self.file_name,
        }


IngestResult = Union[Tier1Result, Tier2Result, UnrecognizedResult]


@dataclass
class BatchSummary:
    total_results: int
    tier1: int
    tier2: int
    unrecognized: int
    files_processed: int
    platforms: list[str]
    report_types: list[dict[str, Any]]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class BatchResult:
    tier1_results: list[Tier1Result]
    tier2_results: list[Tier2Result]
    unrecognized: list[UnrecognizedResult]
    summary: BatchSummary
