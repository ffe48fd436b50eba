from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional


BEST_KEYWORDS = ("best", "top", "popular", "trending")
DISCOUNT_KEYWORDS = ("discount", "offer")
RANDOM_KEYWORDS = ("random", "surprise")

# Ordered: the first keyword starting a word in the query is the category.
# Longer forms come before their substrings ("t-shirt" before "shirt").
CATEGORY_KEYWORDS = (
    "t-shirt",
    "shirt",
    "jeans",
    "dress",
    "saree",
    "kurta",
    "jacket",
    "hoodie",
    "shoes",
    "sneakers",
    "watch",
    "bag",
    "wallet",
    "perfume",
    "jewellery",
)

# Tag substrings that mark a product as discounted.
DISCOUNT_TAG_MARKERS = ("discount", "offer", "sale")

PRICE_RE = re.compile(r"\d+(?:,\d{3})*")


@dataclass
class SearchFilters:
    best_match: bool = False
    sort: Optional[str] = None  # "asc" | "desc"
    discount_only: bool = False
    gift: bool = False
    random_pick: bool = False
    max_price: Optional[int] = None
    category: Optional[str] = None


def extract_filters(text: str) -> SearchFilters:
    """Independent keyword/number heuristics over the query; several can fire at once."""
    msg = (text or "").lower()

    sort = None
    if "low to high" in msg:
        sort = "asc"
    elif "high to low" in msg:
        sort = "desc"

    max_price = None
    m = PRICE_RE.search(msg)
    if m:
        max_price = int(m.group(0).replace(",", ""))

    category = next((c for c in CATEGORY_KEYWORDS if re.search(rf"\b{re.escape(c)}", msg)), None)

    return SearchFilters(
        best_match=any(k in msg for k in BEST_KEYWORDS),
        sort=sort,
        discount_only=any(k in msg for k in DISCOUNT_KEYWORDS),
        gift="gift" in msg,
        random_pick=any(k in msg for k in RANDOM_KEYWORDS),
        max_price=max_price,
        category=category,
    )
