"""Site-specific vocabularies for product and variant detection.

This module holds the per-domain data the product state layer consults: how
product identifiers appear in URLs and element attributes, which brand-specific
color names a retailer uses, and which URL cues imply that a product needs more
than a size before it can go into the cart.
"""
from __future__ import annotations

import re
from typing import Dict, List, Pattern, Tuple

# Product identifiers embedded in URLs, checked in order
PRODUCT_ID_URL_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"pid=([^&#]+)", re.IGNORECASE),
    re.compile(r"/product/([^/?#]+)", re.IGNORECASE),
    re.compile(r"/p/([^/?#]+)", re.IGNORECASE),
    re.compile(r"product_id=([^&#]+)", re.IGNORECASE),
    re.compile(r"/dp/([^/?#]+)", re.IGNORECASE),
    re.compile(r"/ip/[^/?#]+/([^/?#]+)", re.IGNORECASE),
)

# Element attributes that carry product identifiers
PRODUCT_ID_ATTRIBUTES: Tuple[str, ...] = (
    "data-product-id",
    "data-item-id",
    "data-pid",
    "data-asin",
)

# URL or category cues for products sold in size and color variants
APPAREL_CUES: Tuple[str, ...] = (
    "shirt",
    "clothing",
    "dress",
    "apparel",
    "jacket",
    "sweater",
    "shoe",
    "sneaker",
    "jeans",
    "pants",
)

# Checked in order; "women" must precede "men"
CATEGORY_CUES: Tuple[Tuple[str, str], ...] = (
    ("women", "Women"),
    ("men", "Men"),
    ("kids", "Kids"),
)
DEFAULT_CATEGORY = "General"

CART_CUES: Tuple[str, ...] = (
    "add to cart",
    "add to bag",
    "add to basket",
    "addtocart",
    "add-to-cart",
)

GAP_PATTERNS = {
    "brand_colors": ["dazzling", "weathered", "vintage", "classic"],
}

NIKE_PATTERNS = {
    "brand_colors": ["infrared", "volt", "obsidian", "particle"],
}

ANTHROPOLOGIE_PATTERNS = {
    "brand_colors": ["mauve", "sage", "ochre", "cerulean"],
}

# Site pattern registry
SITE_PATTERNS: Dict[str, Dict[str, List[str]]] = {
    "gap.com": GAP_PATTERNS,
    "nike.com": NIKE_PATTERNS,
    "anthropologie.com": ANTHROPOLOGIE_PATTERNS,
}


def domain_for_url(url: str) -> str:
    """Return the registrable host of ``url`` without a ``www.`` prefix."""

    match = re.match(r"^[a-z][a-z0-9+.-]*://([^/?#:]+)", url.strip(), re.IGNORECASE)
    host = match.group(1).lower() if match else ""
    if host.startswith("www."):
        host = host[4:]
    return host


def get_brand_colors_for_domain(domain: str) -> List[str]:
    """Brand-specific color names registered for ``domain``, or an empty list."""

    return list(SITE_PATTERNS.get(domain, {}).get("brand_colors", []))


def category_from_url(url: str) -> str:
    url_lower = url.lower()
    for cue, category in CATEGORY_CUES:
        if cue in url_lower:
            return category
    return DEFAULT_CATEGORY


def is_apparel(*texts: str) -> bool:
    joined = " ".join(texts).lower()
    return any(cue in joined for cue in APPAREL_CUES)


def is_cart_text(text: str) -> bool:
    lowered = text.lower()
    return any(cue in lowered for cue in CART_CUES)
