"""Module-level defaults for ingestion and context building."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping

# ── Header-row location ───────────────────────────────────────────────────────
HEADER_SCAN_ROWS = 5
METADATA_ROW_MARKERS = ("Brand=", "Reporting Range=")
UNRECOGNIZED_HEADER_SAMPLE = 10

# ── Tier-2 metadata detection (case-insensitive exact match) ──────────────────
SPEND_HEADERS = frozenset({"spend", "cost", "amount spent (usd)", "amount spent"})
DATE_HEADERS = frozenset({"date", "day", "reporting starts"})

# ── Context builder ───────────────────────────────────────────────────────────
WASTEFUL_SPEND_FLOOR = 5
ROLLUP_DAYS = 30

# ── Worker pool ───────────────────────────────────────────────────────────────
DEFAULT_MAX_WORKERS = 4


@dataclass(frozen=True)
class IngestSettings:
    use_threads: bool = True
    max_workers: int = DEFAULT_MAX_WORKERS
    header_scan_rows: int = HEADER_SCAN_ROWS


def clamp_limit(value: Any, fallback: int) -> int:
    """Return ``floor(value)`` for a finite positive number, else ``fallback``."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return fallback
    if not math.isfinite(value) or value <= 0:
        return fallback
    floored = math.floor(value)
    return floored if floored > 0 else fallback


@dataclass(frozen=True)
class PromptLimits:
    """Row caps applied while building the context text.

    Caps can never be switched off: any override that is not a finite
    positive number is replaced by the default.
    """

    include_all_threshold: int = 25
    max_rows_per_report: int = 20
    max_waste_rows: int = 12
    max_campaign_rows: int = 15

    _OPTION_KEYS = {
        "include_all_threshold": ("include_all_threshold", "includeAllThreshold"),
        "max_rows_per_report": ("max_rows_per_report", "maxRowsPerReport"),
        "max_waste_rows": ("max_waste_rows", "maxWasteRows"),
        "max_campaign_rows": ("max_campaign_rows", "maxCampaignRows"),
    }

    def __post_init__(self) -> None:
        defaults = PromptLimits.__dataclass_fields__
        for name in self._OPTION_KEYS:
            fallback = defaults[name].default
            object.__setattr__(self, name, clamp_limit(getattr(self, name), fallback))

    @classmethod
    def from_options(cls, options: "Mapping[str, Any] | PromptLimits | None" = None) -> "PromptLimits":
        if isinstance(options, PromptLimits):
            return options
        options = options or {}
        values: dict[str, Any] = {}
        for field_name, keys in cls._OPTION_KEYS.items():
            for key in keys:
                if key in options:
                    values[field_name] = options[key]
                    break
        return cls(**values)
