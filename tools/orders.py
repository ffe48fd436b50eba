import re
from typing import Any, Dict, List

from app.models import OrderRecord, RouterReply
from policies.rules import estimated_delivery, status_label
from tools.shopify import ShopifyClient

MISSING_IDENTIFIER_REPLY = (
    "To check your order, please share the mobile number used for the order "
    "(the last few digits are enough)."
)

EMAIL_RE = re.compile(r"[\w\.-]+@[\w\.-]+\.\w+")
DIGITS_RE = re.compile(r"\d{3,}")


def extract_identifier(text: str) -> str:
    """First run of 3+ digits, else the first email-like token, else ''.

    Orders are matched on phone fields and the note, so a number in the
    message outranks an email. Digits inside an email do not count.
    """
    text = text or ""
    m = DIGITS_RE.search(EMAIL_RE.sub(" ", text))
    if m:
        return m.group(0)
    m = EMAIL_RE.search(text)
    if m:
        return m.group(0)
    return ""


def order_matches(order: OrderRecord, fragment: str) -> bool:
    # substring on purpose: customers often type only the last digits
    return any(fragment in field for field in (order.phone, order.shipping_phone, order.note) if field)


def order_summary(order: OrderRecord) -> Dict[str, Any]:
    return {
        "id": order.id,
        "name": order.name or order.id,
        "customer": order.customer_name or "Customer",
        "total": order.total_price or "0",
        "currency": order.currency or "",
        "status": status_label(order.fulfillment_status),
        "estimated_delivery": estimated_delivery(order.created_at),
        "tracking_url": order.tracking_url,
    }


def render_order(summary: Dict[str, Any]) -> str:
    total = f"{summary['total']} {summary['currency']}".strip()
    return (
        f"🧾 Order {summary['name']}\n"
        f"Customer: {summary['customer']}\n"
        f"Total: {total}\n"
        f"Status: {summary['status']}\n"
        f"Estimated delivery: {summary['estimated_delivery']}\n"
        f"Tracking: {summary['tracking_url'] or 'Not available yet'}"
    )


def _orders_reply(orders: List[OrderRecord]) -> RouterReply:
    summaries = [order_summary(o) for o in orders]
    text = "\n\n".join(render_order(s) for s in summaries)
    return RouterReply(text=text, intent="track", data={"orders": summaries})


def lookup_orders(identifier_fragment: str, shop: ShopifyClient) -> RouterReply:
    """
    All orders (any status) whose phone, shipping phone or note contains the fragment.
    BackendError propagates to the caller.
    """
    fragment = (identifier_fragment or "").strip()
    if not fragment:
        return RouterReply(text=MISSING_IDENTIFIER_REPLY, intent="track")

    orders = shop.list_orders(status="any")
    matched = [o for o in orders if order_matches(o, fragment)]

    if not matched:
        return RouterReply(
            text=f"No order found for {fragment}. Please check the number used at checkout.",
            intent="track",
            data={"orders": []},
        )

    return _orders_reply(matched)


def lookup_order_number(order_number: str, shop: ShopifyClient) -> RouterReply:
    number = (order_number or "").strip().lstrip("#")
    if not number:
        return RouterReply(text="Please share your order number (example: 1001).", intent="track")

    orders = shop.find_orders_by_name(number)
    if not orders:
        return RouterReply(text=f"No order found with ID #{number}", intent="track", data={"orders": []})

    return _orders_reply(orders[:1])
