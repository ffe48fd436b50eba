import random
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from app.config import Settings
from app.models import Product, RouterReply
from policies.rules import parse_ts
from policies.search import DISCOUNT_TAG_MARKERS, SearchFilters, extract_filters
from tools.shopify import ShopifyClient

PAGE_SIZE = 5
PLACEHOLDER_IMAGE_URL = "https://via.placeholder.com/300x300?text=No+Image"
NO_MATCH_REPLY = "Sorry, I couldn't find any matching products. Try another keyword or price range."

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def _updated_key(product: Product) -> datetime:
    dt = parse_ts(product.updated_at)
    if dt is None:
        return _OLDEST
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _is_discounted(product: Product) -> bool:
    return any(marker in tag for tag in product.tags for marker in DISCOUNT_TAG_MARKERS)


def _in_category(product: Product, category: str) -> bool:
    return category in product.title.lower() or any(category in tag for tag in product.tags)


def apply_filters(products: List[Product], filters: SearchFilters) -> List[Product]:
    out = products
    if filters.max_price is not None:
        out = [p for p in out if p.price <= filters.max_price]
    if filters.category:
        out = [p for p in out if _in_category(p, filters.category)]
    if filters.discount_only:
        out = [p for p in out if _is_discounted(p)]
    return out


def apply_sort(products: List[Product], filters: SearchFilters) -> List[Product]:
    if filters.best_match:
        return sorted(products, key=_updated_key, reverse=True)
    if filters.sort == "asc":
        return sorted(products, key=lambda p: p.price)
    if filters.sort == "desc":
        return sorted(products, key=lambda p: p.price, reverse=True)
    return list(products)


def run_pipeline(
    products: List[Product],
    filters: SearchFilters,
    rng: Optional[random.Random] = None,
) -> List[Product]:
    """filter -> sort -> top PAGE_SIZE -> optional single random pick from that page."""
    results = apply_sort(apply_filters(products, filters), filters)[:PAGE_SIZE]
    if filters.random_pick and results:
        results = [(rng or random).choice(results)]
    return results


def format_price(price: float, symbol: str) -> str:
    return f"{symbol}{price:,.2f}"


def product_card(product: Product, settings: Settings) -> Dict[str, Any]:
    return {
        "id": product.id,
        "title": product.title or "Untitled product",
        "price": format_price(product.price, settings.CURRENCY_SYMBOL),
        "image": product.image_url or PLACEHOLDER_IMAGE_URL,
        "url": f"{settings.storefront_url}/products/{product.handle}",
        "available": product.available,
    }


def render_products(cards: List[Dict[str, Any]], filters: SearchFilters) -> str:
    if filters.random_pick:
        header = "🎲 Here's a surprise pick for you:"
    elif filters.gift:
        header = "🎁 Here are some gift ideas you might like:"
    else:
        header = "Here are some products you might like:"

    lines = [header]
    for i, card in enumerate(cards, start=1):
        stock = "" if card["available"] else " (Out of stock)"
        lines.append(f"{i}. {card['title']} - {card['price']}{stock}\n   {card['url']}")
    return "\n".join(lines)


def discover_products(
    query_text: str,
    shop: ShopifyClient,
    settings: Settings,
    rng: Optional[random.Random] = None,
) -> RouterReply:
    # fresh snapshot per request; BackendError (no collection at all) propagates
    catalog = shop.list_products()

    filters = extract_filters(query_text)
    results = run_pipeline(catalog, filters, rng=rng)

    if not results:
        return RouterReply(text=NO_MATCH_REPLY, intent="product", data={"products": []})

    cards = [product_card(p, settings) for p in results]
    return RouterReply(
        text=render_products(cards, filters),
        intent="product",
        data={"products": cards},
    )
