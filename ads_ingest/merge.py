"""
Fold ingestion results into the long-lived daily ledger and tier-2 store.

Both merges copy their input first and return the new structure; the
caller's ledger/store is never modified.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Iterable, Mapping

from ads_ingest.contracts import utc_now_iso
from ads_ingest.models import AdsDailyRecord, AmazonDailyRecord, Tier1Record, Tier1Result, Tier2Result

logger = logging.getLogger(__name__)

STORE_META_KEYS = ("last_updated", "report_count")

# Ledger key for each folded metric, per line-item platform.
ADS_METRIC_KEYS = {
    "google": {
        "spend": "google_spend",
        "impressions": "google_impressions",
        "clicks": "google_clicks",
        "conversions": "google_conversions",
        "conversion_value": "google_conv_value",
        "cpc": "google_cpc",
        "ctr": "google_ctr",
        "cpm": "google_cpm",
        "cost_per_conversion": "google_cost_per_conv",
        "roas": "google_roas",
    },
    "meta": {
        "spend": "meta_spend",
        "impressions": "meta_impressions",
        "clicks": "meta_clicks",
        "conversions": "meta_purchases",
        "conversion_value": "meta_purchase_value",
        "cpc": "meta_cpc",
        "ctr": "meta_ctr",
        "cpm": "meta_cpm",
        "cost_per_conversion": "meta_cost_per_purchase",
        "roas": "meta_roas",
    },
}


def _section(day: dict, key: str) -> dict:
    if not isinstance(day.get(key), dict):
        day[key] = {}
    return day[key]


def _apply_record(day: dict, record: Tier1Record) -> None:
    if isinstance(record, AmazonDailyRecord):
        _section(day, "amazon_ads_metrics").update(record.metrics())
        return

    if isinstance(record, AdsDailyRecord) and record.platform in ADS_METRIC_KEYS:
        keys = ADS_METRIC_KEYS[record.platform]
        shopify = _section(day, "shopify")
        # Spend for the platform is replaced by the latest upload for the day.
        shopify[keys["spend"]] = record.spend
        ads_metrics = _section(shopify, "ads_metrics")
        for field_name, value in record.metrics().items():
            if field_name != "spend":
                ads_metrics[keys[field_name]] = value
        return

    raise ValueError(f"No ledger mapping for tier-1 record from platform '{record.platform}'")


def merge_tier1(ledger: Mapping[str, Any] | None, results: Iterable[Tier1Result]) -> dict[str, Any]:
    """
    Return a copy of ``ledger`` with every tier-1 day folded in.

    New dates start as ``{"amazon": {}, "shopify": {}}``. Amazon days replace
    the metrics they carry under ``amazon_ads_metrics``; Google and Meta days
    replace their spend under ``shopify`` and merge their rate metrics into
    ``shopify.ads_metrics`` key by key.
    """
    updated = copy.deepcopy(dict(ledger or {}))
    merged_days = 0
    for result in results:
        if not isinstance(result, Tier1Result):
            continue
        for day_key, record in result.records.items():
            if not isinstance(updated.get(day_key), dict):
                updated[day_key] = {"amazon": {}, "shopify": {}}
            _apply_record(updated[day_key], record)
            merged_days += 1
    logger.debug("Merged %d tier-1 days into ledger (%d dates total)", merged_days, len(updated))
    return updated


def count_reports(store: Mapping[str, Any]) -> int:
    total = 0
    for key, value in store.items():
        if key in STORE_META_KEYS or not isinstance(value, dict) or "records" in value:
            continue
        total += sum(1 for report_type in value if report_type not in STORE_META_KEYS)
    return total


def merge_tier2(
    store: Mapping[str, Any] | None,
    results: Iterable[Tier2Result],
    *,
    now: str | None = None,
) -> dict[str, Any]:
    """
    Return a copy of ``store`` with each tier-2 bundle replaced wholesale.

    A bundle lives at ``store[platform][report_type]``; uploading the same
    report type again discards the previous bundle, and every other bundle is
    left alone. ``last_updated`` and ``report_count`` are recomputed.
    """
    stamp = now or utc_now_iso()
    updated = copy.deepcopy(dict(store or {}))
    for result in results:
        if not isinstance(result, Tier2Result) or not result.report_type:
            continue
        platform = result.platform or "other"
        if not isinstance(updated.get(platform), dict):
            updated[platform] = {}
        updated[platform][result.report_type] = {
            "records": copy.deepcopy(result.records),
            "headers": list(result.headers),
            "meta": copy.deepcopy(result.meta),
            "file_name": result.file_name,
            "uploaded_at": stamp,
        }

    updated["last_updated"] = stamp
    updated["report_count"] = count_reports(updated)
    return updated
