"""
Report signature registry.

Each signature names a report type by the header fragments its exports carry.
The registry is an ordered catalog: the classifier walks it top to bottom and
keeps the first signature with the best score, so more specific formats are
listed ahead of general ones that share required fragments.

Tier 1 report types feed the daily ledger:
    amazon_daily_aggregate  one pre-aggregated row per day
    google_daily            one row per ad per day, folded to daily totals
    meta_daily              one row per ad per day, folded to daily totals

Tier 2 report types are kept as tabular bundles for later analysis:
    Amazon   sp_search_terms, sp_advertised_product, sp_targeting, sp_placement,
             sb_campaign_placement, sb_search_terms, sd_campaign,
             search_query_performance, business_report_child,
             business_report_parent, sku_economics
    Google   google_campaign_perf, google_search_terms, google_keywords,
             google_ad_groups, google_asset_groups
    Meta     meta_campaign_perf, meta_ads, meta_ad_sets, meta_placement,
             meta_age, meta_gender, meta_ads_overview
    Shopify  shopify_sales, shopify_sessions, shopify_conversion, shopify_aov,
             shopify_landing_pages
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterable, Iterator


@dataclass(frozen=True)
class ReportSignature:
    id: str
    tier: int
    platform: str
    label: str
    required: tuple[str, ...]
    optional: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.tier not in (1, 2):
            raise ValueError(f"Signature '{self.id}' has invalid tier {self.tier!r}")
        if not self.required:
            raise ValueError(f"Signature '{self.id}' needs at least one required fragment")

    def as_tier2(self, report_type: str, label: str) -> "ReportSignature":
        """Copy of this signature re-tagged as a tier-2 detail report."""
        return replace(self, id=report_type, tier=2, label=label)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tier": self.tier,
            "platform": self.platform,
            "label": self.label,
            "required": list(self.required),
            "optional": list(self.optional),
        }


class SignatureRegistry:
    """Ordered, immutable collection of report signatures."""

    def __init__(self, signatures: Iterable[ReportSignature]) -> None:
        ordered = tuple(signatures)
        seen: set[str] = set()
        for signature in ordered:
            if signature.id in seen:
                raise ValueError(f"Duplicate signature id: {signature.id}")
            seen.add(signature.id)
        self._signatures = ordered
        self._by_id = {signature.id: signature for signature in ordered}

    def __iter__(self) -> Iterator[ReportSignature]:
        return iter(self._signatures)

    def __len__(self) -> int:
        return len(self._signatures)

    def __contains__(self, signature_id: object) -> bool:
        return signature_id in self._by_id

    def get(self, signature_id: str) -> ReportSignature | None:
        return self._by_id.get(signature_id)

    def for_tier(self, tier: int) -> list[ReportSignature]:
        return [signature for signature in self._signatures if signature.tier == tier]

    def platforms(self) -> list[str]:
        return list(dict.fromkeys(signature.platform for signature in self._signatures))


REPORT_SIGNATURES = (
    # ── Tier 1: daily KPI feeds ──────────────────────────────────────────────
    # "Ads data" workbooks: date, Spend, Revenue, Orders, ROAS, ACOS, ...
    ReportSignature(
        id="amazon_daily_aggregate",
        tier=1,
        platform="amazon",
        label="Amazon Daily Aggregate",
        required=("date", "Spend", "Revenue", "ROAS", "ACOS"),
        optional=("Impressions", "Clicks", "CTR", "Total ACOS (TACOS)", "Total Revenue"),
    ),
    ReportSignature(
        id="google_daily",
        tier=1,
        platform="google",
        label="Google Ads Daily",
        required=("Day", "Campaign", "Cost", "Impressions", "Clicks"),
        optional=("Ad ID", "All conv. value", "Conversions", "CTR", "Avg. CPC", "Conv. value / cost"),
    ),
    ReportSignature(
        id="meta_daily",
        tier=1,
        platform="meta",
        label="Meta Ads Daily",
        required=("Date", "Ad name", "Amount spent", "Impressions"),
        optional=("Purchases value (all)", "Purchases (all)", "Purchase (ROAS) (all)", "Link clicks", "CTR (all)", "CPM"),
    ),

    # ── Tier 2: Amazon Sponsored Products ────────────────────────────────────
    ReportSignature(
        id="sp_search_terms",
        tier=2,
        platform="amazon",
        label="SP Search Terms",
        required=("Customer Search Term", "Campaign Name", "Spend"),
        optional=("Ad Group Name", "Targeting", "Match Type", "Impressions", "Clicks", "7 Day Total Sales"),
    ),
    ReportSignature(
        id="sp_advertised_product",
        tier=2,
        platform="amazon",
        label="SP Advertised Product",
        required=("Advertised ASIN", "Advertised SKU", "Spend"),
        optional=("Campaign Name", "Impressions", "Clicks", "7 Day Total Sales"),
    ),
    ReportSignature(
        id="sp_targeting",
        tier=2,
        platform="amazon",
        label="SP Targeting",
        required=("Targeting", "Match Type", "Impressions"),
        optional=("Campaign Name", "Spend", "Top-of-search Impression Share", "7 Day Total Sales"),
    ),
    ReportSignature(
        id="sp_placement",
        tier=2,
        platform="amazon",
        label="SP Placement",
        required=("Placement", "Bidding strategy", "Campaign Name"),
        optional=("Impressions", "Clicks", "Spend", "7 Day Total Sales"),
    ),

    # ── Tier 2: Amazon Sponsored Brands ──────────────────────────────────────
    ReportSignature(
        id="sb_campaign_placement",
        tier=2,
        platform="amazon",
        label="SB Campaign Placement",
        required=("Campaign Name", "Placement", "Cost type"),
        optional=("Impressions", "Clicks", "Spend", "14 Day Total Sales", "Viewable Impressions"),
    ),
    ReportSignature(
        id="sb_search_terms",
        tier=2,
        platform="amazon",
        label="SB Search Terms",
        required=("Customer Search Term", "Campaign Name", "Cost type"),
        optional=("Impressions", "Clicks", "Spend", "14 Day Total Sales"),
    ),

    # ── Tier 2: Amazon Sponsored Display ─────────────────────────────────────
    ReportSignature(
        id="sd_campaign",
        tier=2,
        platform="amazon",
        label="SD Campaign",
        required=("Campaign Name", "Budget Amount"),
        optional=("Impressions", "Clicks", "Spend", "14 Day Total Sales", "14 Day Detail Page Views (DPV)"),
    ),

    # ── Tier 2: Amazon Brand Analytics ───────────────────────────────────────
    ReportSignature(
        id="search_query_performance",
        tier=2,
        platform="amazon",
        label="Search Query Performance",
        required=("Search Query", "Search Query Volume"),
        optional=(
            "Impressions: Total Count",
            "Impressions: Brand Count",
            "Impressions: Brand Share %",
            "Clicks: Total Count",
        ),
    ),

    # ── Tier 2: Google Ads (workbooks with metadata rows above the header) ───
    ReportSignature(
        id="google_campaign_perf",
        tier=2,
        platform="google",
        label="Google Campaign Performance",
        required=("Campaign", "Campaign state", "Campaign type", "Cost"),
        optional=("Clicks", "Impr.", "CTR", "Conversions", "Conv. value"),
    ),
    ReportSignature(
        id="google_search_terms",
        tier=2,
        platform="google",
        label="Google Search Terms",
        required=("Search term", "Campaign", "Cost"),
        optional=("Match type", "Impr.", "Clicks", "Conversions", "Conv. value"),
    ),
    ReportSignature(
        id="google_keywords",
        tier=2,
        platform="google",
        label="Google Keywords",
        required=("Keyword", "Campaign", "Match type"),
        optional=("Keyword status", "Impr.", "Clicks", "Cost", "Conversions"),
    ),
    ReportSignature(
        id="google_ad_groups",
        tier=2,
        platform="google",
        label="Google Ad Group Performance",
        required=("Ad group", "Campaign", "Campaign type"),
        optional=("Clicks", "Impr.", "Cost", "Conversions"),
    ),
    ReportSignature(
        id="google_asset_groups",
        tier=2,
        platform="google",
        label="Google Asset Groups",
        required=("Asset Group", "Campaign", "Headlines"),
        optional=("Descriptions", "Asset group status"),
    ),

    # ── Tier 2: Meta Ads ─────────────────────────────────────────────────────
    ReportSignature(
        id="meta_campaign_perf",
        tier=2,
        platform="meta",
        label="Meta Campaign Performance",
        required=("Campaign name", "Campaign delivery", "Amount spent (USD)"),
        optional=("Impressions", "Reach", "Frequency", "CPM", "Link clicks", "Purchases"),
    ),
    ReportSignature(
        id="meta_ads",
        tier=2,
        platform="meta",
        label="Meta Ads",
        required=("Ad name", "Ad delivery", "Amount spent (USD)"),
        optional=("Impressions", "Reach", "Link clicks", "Purchases", "Quality ranking"),
    ),
    ReportSignature(
        id="meta_ad_sets",
        tier=2,
        platform="meta",
        label="Meta Ad Sets",
        required=("Ad set name", "Ad set delivery", "Amount spent (USD)"),
        optional=("Impressions", "Reach", "Bid", "Link clicks"),
    ),
    ReportSignature(
        id="meta_placement",
        tier=2,
        platform="meta",
        label="Meta Placement",
        required=("Ad set name", "Platform", "Placement", "Amount spent (USD)"),
        optional=("Device platform", "Impressions"),
    ),
    ReportSignature(
        id="meta_age",
        tier=2,
        platform="meta",
        label="Meta Age Breakdown",
        required=("Ad set name", "Age", "Amount spent (USD)"),
        optional=("Impressions", "Reach"),
    ),
    ReportSignature(
        id="meta_gender",
        tier=2,
        platform="meta",
        label="Meta Gender Breakdown",
        required=("Ad set name", "Gender", "Amount spent (USD)"),
        optional=("Impressions", "Reach"),
    ),
    ReportSignature(
        id="meta_ads_overview",
        tier=2,
        platform="meta",
        label="Meta Ads Overview (Facebook Export)",
        required=("Reporting starts", "Campaign name", "Amount spent (USD)"),
        optional=("Results", "Impressions", "Reach", "Frequency"),
    ),

    # ── Tier 2: Shopify ──────────────────────────────────────────────────────
    ReportSignature(
        id="shopify_sales",
        tier=2,
        platform="shopify",
        label="Shopify Sales",
        required=("Day", "Orders", "Gross sales", "Net sales"),
        optional=("Discounts", "Returns", "Shipping charges", "Taxes", "Total sales"),
    ),
    ReportSignature(
        id="shopify_sessions",
        tier=2,
        platform="shopify",
        label="Shopify Sessions",
        required=("Day", "Online store visitors", "Sessions"),
        optional=("Day (previous_period)",),
    ),
    ReportSignature(
        id="shopify_conversion",
        tier=2,
        platform="shopify",
        label="Shopify Conversion Rate",
        required=("Day", "Sessions", "Conversion rate"),
        optional=("Sessions with cart additions", "Sessions that reached checkout"),
    ),
    ReportSignature(
        id="shopify_aov",
        tier=2,
        platform="shopify",
        label="Shopify AOV",
        required=("Day", "Average order value", "Orders"),
        optional=("Gross sales", "Discounts"),
    ),
    ReportSignature(
        id="shopify_landing_pages",
        tier=2,
        platform="shopify",
        label="Shopify Landing Pages",
        required=("Landing page path", "Sessions"),
        optional=("Landing page type", "Online store visitors", "Sessions with cart additions"),
    ),

    # ── Tier 2: business reports and SKU economics ───────────────────────────
    ReportSignature(
        id="business_report_child",
        tier=2,
        platform="amazon",
        label="Business Report (Child ASIN)",
        required=("(Child) ASIN", "Sessions - Total"),
        optional=("(Parent) ASIN", "Title", "Page Views - Total", "Units Ordered", "Ordered Product Sales"),
    ),
    ReportSignature(
        id="business_report_parent",
        tier=2,
        platform="amazon",
        label="Business Report (Parent ASIN)",
        required=("(Parent) ASIN", "Sessions - Total", "Units Ordered"),
        optional=("Title", "Page Views - Total", "Featured Offer (Buy Box) Percentage"),
    ),
    ReportSignature(
        id="sku_economics",
        tier=2,
        platform="amazon",
        label="SKU Economics Report",
        required=("ASIN", "MSKU", "Average sales price"),
        optional=("Units sold", "Sales", "FBA Fulfillment Fee per unit"),
    ),
)

DEFAULT_REGISTRY = SignatureRegistry(REPORT_SIGNATURES)

# Line-item tier-1 reports also emit a tier-2 detail bundle from the same rows.
DETAIL_REPORTS = {
    "google_daily": ("google_daily_detail", "Google Daily Campaign Detail"),
    "meta_daily": ("meta_daily_detail", "Meta Daily Campaign Detail"),
}
