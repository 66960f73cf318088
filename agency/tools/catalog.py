"""Option catalogs for the strategy-call form and the case-study CMS."""

import logging
from typing import Optional

logger = logging.getLogger(__name__)

BUSINESS_TYPES: list[str] = [
    "Trades & Services",
    "Hospitality & Food",
    "Retail",
    "Health & Fitness",
    "Professional Services",
    "Beauty & Wellness",
    "Home Services",
    "Automotive",
    "Other",
]

REVENUE_RANGES: list[str] = [
    "$0 - $5,000",
    "$5,000 - $20,000",
    "$20,000 - $50,000",
    "$50,000 - $100,000",
    "$100,000+",
]

MARKETING_CHANNELS: list[str] = [
    "Social Media",
    "Google Ads",
    "Facebook/Instagram Ads",
    "SEO",
    "Email Marketing",
    "Word of Mouth",
    "Local Directories",
    "Print Media",
    "None/Just Started",
]

INDUSTRY_OPTIONS: list[str] = [
    "Trades & Services",
    "Retail & E-commerce",
    "Healthcare & Wellness",
    "Hospitality & Tourism",
    "Professional Services",
    "Real Estate",
    "Automotive",
    "Construction",
    "Education & Training",
    "Finance & Insurance",
    "Agriculture & Farming",
    "Manufacturing",
    "Technology",
    "Beauty & Personal Care",
    "Home & Garden Services",
    "Sports & Fitness",
    "Legal Services",
    "Accounting & Bookkeeping",
    "Other",
]

TAG_OPTIONS: list[str] = [
    "social-media",
    "website-design",
    "seo",
    "local-seo",
    "google-ads",
    "facebook-ads",
    "content-marketing",
    "email-marketing",
    "branding",
    "conversion-optimization",
    "e-commerce",
    "mobile-optimization",
    "analytics",
    "lead-generation",
    "reputation-management",
]

BUSINESS_TYPE_ALIASES: dict[str, str] = {
    "plumber": "Trades & Services", "electrician": "Trades & Services",
    "builder": "Trades & Services", "tradie": "Trades & Services",
    "cafe": "Hospitality & Food", "restaurant": "Hospitality & Food",
    "bar": "Hospitality & Food", "catering": "Hospitality & Food",
    "shop": "Retail", "store": "Retail", "boutique": "Retail",
    "gym": "Health & Fitness", "physio": "Health & Fitness", "yoga": "Health & Fitness",
    "accountant": "Professional Services", "lawyer": "Professional Services",
    "consultant": "Professional Services",
    "salon": "Beauty & Wellness", "spa": "Beauty & Wellness", "barber": "Beauty & Wellness",
    "cleaning": "Home Services", "gardening": "Home Services", "landscaping": "Home Services",
    "mechanic": "Automotive", "car wash": "Automotive", "detailing": "Automotive",
}


def canonical_option(value: str, options: list[str]) -> Optional[str]:
    """Return the catalog spelling of ``value`` (case-insensitive), or None."""
    normalized = value.strip().lower()
    for option in options:
        if option.lower() == normalized:
            return option
    return None


def is_valid_business_type(value: str) -> bool:
    return canonical_option(value, BUSINESS_TYPES) is not None


def is_valid_revenue_range(value: str) -> bool:
    return canonical_option(value, REVENUE_RANGES) is not None


def is_valid_marketing_channel(value: str) -> bool:
    return canonical_option(value, MARKETING_CHANNELS) is not None


def is_valid_industry(value: str) -> bool:
    return canonical_option(value, INDUSTRY_OPTIONS) is not None


def is_valid_tag(value: str) -> bool:
    return canonical_option(value, TAG_OPTIONS) is not None


def match_business_type(query: str) -> Optional[str]:
    """Match free text ("we run a cafe") to a business type. Returns None if no match."""
    exact = canonical_option(query, BUSINESS_TYPES)
    if exact:
        return exact
    normalized = query.lower().strip()
    for alias, business_type in BUSINESS_TYPE_ALIASES.items():
        if alias in normalized:
            return business_type
    return None


def get_form_options() -> dict[str, list[str]]:
    """All option lists the public booking and case-study pages render."""
    return {
        "business_types": list(BUSINESS_TYPES),
        "revenue_ranges": list(REVENUE_RANGES),
        "marketing_channels": list(MARKETING_CHANNELS),
        "industries": list(INDUSTRY_OPTIONS),
        "tags": list(TAG_OPTIONS),
    }
