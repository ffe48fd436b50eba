from datetime import datetime, timedelta
from typing import Optional


# Shopify fulfillment_status -> label shown to the customer.
# Anything not listed (including None) is "Processing".
STATUS_LABELS = {
    "fulfilled": "Delivered",
    "partial": "Partially Shipped",
    "restocked": "Returned",
    "pending": "Pending",
}
DEFAULT_STATUS_LABEL = "Processing"

# Fixed offset from order creation; not a carrier estimate.
DELIVERY_ESTIMATE_DAYS = 4
ESTIMATE_FORMAT = "%d %B %Y"


def parse_ts(ts: Optional[str]) -> Optional[datetime]:
    if not ts:
        return None
    # supports "2024-10-03T12:34:56Z" and "2024-10-03T12:34:56+05:30"
    ts = ts.replace("Z", "+00:00")
    try:
        return datetime.fromisoformat(ts)
    except ValueError:
        return None


def status_label(fulfillment_status: Optional[str]) -> str:
    key = (fulfillment_status or "").lower().strip()
    return STATUS_LABELS.get(key, DEFAULT_STATUS_LABEL)


def estimated_delivery(created_at: Optional[str]) -> str:
    """created_at + 4 days as e.g. '07 October 2024'; 'N/A' when the timestamp is unusable."""
    dt = parse_ts(created_at)
    if not dt:
        return "N/A"
    return (dt + timedelta(days=DELIVERY_ESTIMATE_DAYS)).strftime(ESTIMATE_FORMAT)
