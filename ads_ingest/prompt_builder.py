"""
Context builder: one bounded block of text summarising everything ingested.

The output is plain text meant to be handed to a language model by the
caller; nothing here talks to a model. Every tier-2 bundle is capped so the
text stays bounded no matter how large the uploads were.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Mapping, Sequence

from ads_ingest.config import ROLLUP_DAYS, WASTEFUL_SPEND_FLOOR, PromptLimits
from ads_ingest.merge import STORE_META_KEYS
from ads_ingest.normalizers import to_number

SPEND_KEY_RE = re.compile(r"^(spend|cost|amount spent)", re.IGNORECASE)
SALES_KEY_RE = re.compile(r"sales|revenue|conv.*value", re.IGNORECASE)

TASK_SECTION = """
## YOUR TASK
Generate a COMPREHENSIVE advertising audit covering:
1. **Executive Summary**: overall health across all platforms, key wins and problems
2. **Amazon PPC Analysis**: campaign efficiency, keyword winners/losers, placement strategy, ACOS trends
3. **Google Ads Analysis**: campaign performance, search term quality, keyword opportunities
4. **Meta Ads Analysis**: creative performance, audience insights, placement efficiency
5. **Cross-Channel Insights**: budget allocation efficiency, overlap/cannibalization, attribution gaps
6. **Immediate Actions** (do this week): specific, numbered, with expected impact
7. **Strategic Recommendations** (next 30 days): budget shifts, new campaigns, testing ideas

Be specific. Reference actual campaign names, keywords, ASINs, ad names, and dollar amounts. Generic advice like "optimize your campaigns" is worthless."""


def format_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float):
        if value != value:
            return ""
        return str(int(value)) if value.is_integer() else str(value)
    if isinstance(value, datetime):
        return value.date().isoformat() if value.time() == datetime.min.time() else value.isoformat(sep=" ")
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def format_record(record: Mapping[str, Any], headers: Sequence[str]) -> str:
    return " | ".join(format_cell(record.get(header)) for header in headers)


def _preamble(store_name: str | None) -> str:
    subject = f"{store_name}'s" if store_name else "the brand's"
    return (
        "You are an expert Amazon & DTC advertising strategist performing a comprehensive audit "
        f"of {subject} advertising across all platforms. Provide specific, actionable "
        "recommendations with exact numbers. Do NOT be generic: reference specific campaigns, "
        "keywords, ASINs, placements, and metrics."
    )


def _nested(day: Mapping[str, Any], *path: str) -> Any:
    value: Any = day
    for key in path:
        if not isinstance(value, Mapping):
            return None
        value = value.get(key)
    return value


def overview_section(ledger_excerpt: Mapping[str, Any]) -> str:
    """Roll the most recent days of the ledger up into per-platform totals."""
    dates = sorted(ledger_excerpt)[-ROLLUP_DAYS:]
    amazon_spend = amazon_revenue = google_spend = meta_spend = shopify_revenue = 0.0
    for day_key in dates:
        day = ledger_excerpt[day_key]
        amazon_spend += to_number(_nested(day, "amazon", "ad_spend")) or to_number(
            _nested(day, "amazon_ads_metrics", "spend")
        )
        amazon_revenue += to_number(_nested(day, "amazon", "revenue"))
        google_spend += to_number(_nested(day, "shopify", "google_spend"))
        meta_spend += to_number(_nested(day, "shopify", "meta_spend"))
        shopify_revenue += to_number(_nested(day, "shopify", "revenue"))

    total_spend = amazon_spend + google_spend + meta_spend
    total_revenue = amazon_revenue + shopify_revenue
    tacos = f"{amazon_spend / amazon_revenue * 100:.1f}" if amazon_revenue > 0 else "N/A"
    roas = f"{total_revenue / total_spend:.2f}" if total_spend > 0 else "N/A"

    lines = [
        f"\n## LAST {ROLLUP_DAYS} DAYS OVERVIEW (from daily sales data)",
        f"- Amazon: ${amazon_spend:.0f} ad spend → ${amazon_revenue:.0f} revenue (TACOS: {tacos}%)",
        f"- Google: ${google_spend:.0f} ad spend",
        f"- Meta: ${meta_spend:.0f} ad spend",
        f"- Shopify Revenue: ${shopify_revenue:.0f}",
        f"- Total Ad Spend: ${total_spend:.0f}",
        f"- Total Revenue: ${total_revenue:.0f}",
        f"- Combined ROAS: {roas}x",
    ]
    return "\n".join(lines)


def campaign_section(campaigns: Sequence[Mapping[str, Any]], limit: int) -> str:
    enabled = sum(1 for campaign in campaigns if campaign.get("state") == "ENABLED")
    lines = [
        "\n## AMAZON CAMPAIGNS",
        f"{len(campaigns)} total campaigns ({enabled} enabled)",
    ]
    for campaign in campaigns[:limit]:
        lines.append(
            f"- {campaign.get('name', '')}: {campaign.get('state', '')}"
            f" | Budget: ${format_cell(campaign.get('budget') or 0)}"
            f" | Spend: ${to_number(campaign.get('spend')):.2f}"
            f" | ROAS: {to_number(campaign.get('roas')):.2f}x"
        )
    return "\n".join(lines)


def bundle_section(platform: str, report_type: str, bundle: Mapping[str, Any], limits: PromptLimits) -> list[str]:
    records: list[Mapping[str, Any]] = bundle["records"]
    headers: list[str] = [str(header) for header in bundle["headers"]]
    meta = bundle.get("meta") or {}
    label = meta.get("label") or report_type
    uploaded = str(meta.get("uploaded_at") or bundle.get("uploaded_at") or "")[:10] or "unknown"
    row_count = len(records)

    lines = [
        f"\n## {platform.upper()}: {label} ({row_count} rows, uploaded {uploaded})",
        f"Headers: {' | '.join(headers)}",
    ]

    if row_count <= limits.include_all_threshold:
        lines.extend(format_record(record, headers) for record in records)
        return lines

    top_count = min(limits.max_rows_per_report, row_count)
    spend_key = next((header for header in headers if SPEND_KEY_RE.match(header)), None)
    if spend_key is None:
        lines.append(f"\nFirst {top_count} records:")
        lines.extend(format_record(record, headers) for record in records[:top_count])
    else:
        ranked = sorted(records, key=lambda record: to_number(record.get(spend_key)), reverse=True)
        lines.append(f"\nTop {top_count} by spend:")
        lines.extend(format_record(record, headers) for record in ranked[:top_count])

        sales_key = next((header for header in headers if SALES_KEY_RE.search(header)), None)
        if sales_key is not None:
            wasteful = [
                record
                for record in ranked
                if to_number(record.get(spend_key)) > WASTEFUL_SPEND_FLOOR
                and to_number(record.get(sales_key)) == 0
            ]
            if wasteful:
                lines.append(
                    f"\nWasteful (spend > ${WASTEFUL_SPEND_FLOOR}, zero sales): {len(wasteful)} entries"
                )
                lines.extend(format_record(record, headers) for record in wasteful[: limits.max_waste_rows])

    if row_count > top_count:
        lines.append(f"\n... and {row_count - top_count} more rows")
    return lines


def _is_bundle(value: Any) -> bool:
    return (
        isinstance(value, Mapping)
        and isinstance(value.get("records"), list)
        and isinstance(value.get("headers"), list)
    )


def build_context(
    tier2_store: Mapping[str, Any] | None,
    ledger_excerpt: Mapping[str, Any] | None,
    campaign_data: Mapping[str, Any] | None = None,
    options: "Mapping[str, Any] | PromptLimits | None" = None,
    *,
    store_name: str | None = None,
) -> str:
    """
    Build the bounded context text from the tier-2 store and a ledger excerpt.

    ``options`` may be a ``PromptLimits`` or a mapping of overrides
    (``max_rows_per_report`` or ``maxRowsPerReport`` and so on); overrides
    that are not finite positive numbers fall back to the defaults.
    """
    limits = PromptLimits.from_options(options)
    sections = [_preamble(store_name)]

    if ledger_excerpt:
        sections.append(overview_section(ledger_excerpt))

    campaigns = (campaign_data or {}).get("campaigns") or []
    if campaigns:
        sections.append(campaign_section(campaigns, limits.max_campaign_rows))

    for platform, reports in (tier2_store or {}).items():
        if platform in STORE_META_KEYS or not isinstance(reports, Mapping):
            continue
        for report_type, bundle in reports.items():
            if not _is_bundle(bundle):
                continue
            sections.extend(bundle_section(platform, report_type, bundle, limits))

    sections.append(TASK_SECTION)
    return "\n".join(sections)
