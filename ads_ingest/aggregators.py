"""
Tier-1 aggregators: fold a classified sheet into one record per calendar day.

The Amazon "Ads data" export is already one row per day, so its columns are
copied straight across. Google and Meta daily exports carry one row per ad per
day; their raw counters are summed per date first and every rate is derived
once from the sums.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

from ads_ingest.models import AdsDailyRecord, AmazonDailyRecord, Tier1Record
from ads_ingest.normalizers import to_iso_date, to_number


@dataclass
class DailyAggregate:
    records: dict[str, Tier1Record]
    meta: dict[str, Any] = field(default_factory=dict)


class ColumnIndex:
    """Resolve canonical column names to positions in an exported header row.

    Lookup order: exact trimmed match, case-insensitive match, then
    case-insensitive prefix followed by a parenthesised qualifier ("Amount
    spent" finds "Amount spent (USD)" but "Conversions" never finds
    "Conversions value").
    """

    def __init__(self, headers: Sequence[Any]) -> None:
        self.headers = [str(header if header is not None else "").strip() for header in headers]
        self._exact: dict[str, int] = {}
        self._folded: dict[str, int] = {}
        for index, header in enumerate(self.headers):
            if not header:
                continue
            self._exact.setdefault(header, index)
            self._folded.setdefault(header.lower(), index)

    def find(self, name: str) -> int | None:
        if name in self._exact:
            return self._exact[name]
        folded = name.lower()
        if folded in self._folded:
            return self._folded[folded]
        for index, header in enumerate(self.headers):
            lowered = header.lower()
            if lowered.startswith(folded) and lowered[len(folded):].lstrip().startswith("("):
                return index
        return None

    def getter(self, name: str) -> Callable[[Sequence[Any]], Any]:
        index = self.find(name)

        def cell(row: Sequence[Any]) -> Any:
            if index is None or index >= len(row):
                return None
            return row[index]

        return cell


def _ratio(numerator: float, denominator: float, scale: float = 1.0) -> float:
    return numerator * scale / denominator if denominator > 0 else 0.0


def _tier1_meta(report_type: str, platform: str, records: dict[str, Tier1Record]) -> dict[str, Any]:
    return {
        "type": report_type,
        "platform": platform,
        "tier": 1,
        "days": len(records),
        "date_range": sorted(records),
        "total_spend": sum(record.spend for record in records.values()),
    }


# ── Amazon: one pre-aggregated row per day ────────────────────────────────────

AMAZON_COLUMNS = {
    "spend": "Spend",
    "revenue": "Revenue",
    "orders": "Orders",
    "conversions": "Conversions",
    "roas": "ROAS",
    "acos": "ACOS",
    "impressions": "Impressions",
    "clicks": "Clicks",
    "ctr": "CTR",
    "cpc": "Avg CPC",
    "conv_rate": "Conv Rate",
    "tacos": "Total ACOS (TACOS)",
    "total_units": "Total Units Ordered",
    "total_revenue": "Total Revenue",
}


def aggregate_amazon_daily(data_rows: Sequence[Sequence[Any]], headers: Sequence[Any]) -> DailyAggregate:
    columns = ColumnIndex(headers)
    date_cell = columns.getter("date")
    getters = {name: columns.getter(header) for name, header in AMAZON_COLUMNS.items()}

    records: dict[str, Tier1Record] = {}
    for row in data_rows:
        day = to_iso_date(date_cell(row))
        if not day:
            continue
        # Same date twice: the later row replaces the earlier one.
        records[day] = AmazonDailyRecord(
            date=day,
            **{name: to_number(cell(row)) for name, cell in getters.items()},
        )

    meta = _tier1_meta("amazon_daily_aggregate", "amazon", records)
    meta["total_revenue"] = sum(record.revenue for record in records.values())
    return DailyAggregate(records=records, meta=meta)


# ── Google / Meta: one row per ad per day, folded ─────────────────────────────

@dataclass(frozen=True)
class LineItemColumns:
    date: str
    spend: str
    conversion_value: str
    conversions: str
    impressions: str
    clicks: str


GOOGLE_COLUMNS = LineItemColumns(
    date="Day",
    spend="Cost",
    conversion_value="All conv. value",
    conversions="Conversions",
    impressions="Impressions",
    clicks="Clicks",
)

META_COLUMNS = LineItemColumns(
    date="Date",
    spend="Amount spent",
    conversion_value="Purchases value (all)",
    conversions="Purchases (all)",
    impressions="Impressions",
    clicks="Link clicks",
)

SUMMED_FIELDS = ("spend", "conversion_value", "conversions", "impressions", "clicks")


def fold_line_items(
    data_rows: Sequence[Sequence[Any]],
    headers: Sequence[Any],
    platform: str,
    spec: LineItemColumns,
) -> dict[str, AdsDailyRecord]:
    columns = ColumnIndex(headers)
    date_cell = columns.getter(spec.date)
    getters = {name: columns.getter(getattr(spec, name)) for name in SUMMED_FIELDS}

    totals: dict[str, dict[str, float]] = {}
    for row in data_rows:
        day = to_iso_date(date_cell(row))
        if not day:
            continue
        bucket = totals.setdefault(day, dict.fromkeys(SUMMED_FIELDS, 0.0))
        for name, cell in getters.items():
            bucket[name] += to_number(cell(row))

    records = {}
    for day, sums in totals.items():
        spend = sums["spend"]
        records[day] = AdsDailyRecord(
            platform=platform,
            date=day,
            spend=spend,
            impressions=sums["impressions"],
            clicks=sums["clicks"],
            conversions=sums["conversions"],
            conversion_value=sums["conversion_value"],
            cpc=_ratio(spend, sums["clicks"]),
            ctr=_ratio(sums["clicks"], sums["impressions"], 100),
            cpm=_ratio(spend, sums["impressions"], 1000),
            cost_per_conversion=_ratio(spend, sums["conversions"]),
            roas=_ratio(sums["conversion_value"], spend),
        )
    return records


def aggregate_google_daily(data_rows: Sequence[Sequence[Any]], headers: Sequence[Any]) -> DailyAggregate:
    records = fold_line_items(data_rows, headers, "google", GOOGLE_COLUMNS)
    return DailyAggregate(records=records, meta=_tier1_meta("google_daily", "google", records))


def aggregate_meta_daily(data_rows: Sequence[Sequence[Any]], headers: Sequence[Any]) -> DailyAggregate:
    records = fold_line_items(data_rows, headers, "meta", META_COLUMNS)
    return DailyAggregate(records=records, meta=_tier1_meta("meta_daily", "meta", records))


TIER1_AGGREGATORS: dict[str, Callable[[Sequence[Sequence[Any]], Sequence[Any]], DailyAggregate]] = {
    "amazon_daily_aggregate": aggregate_amazon_daily,
    "google_daily": aggregate_google_daily,
    "meta_daily": aggregate_meta_daily,
}
