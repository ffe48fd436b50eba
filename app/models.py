# app/models.py

from typing import Optional, List, Dict, Any

from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    message: Optional[str] = None


class TrackRequest(BaseModel):
    mobile: Optional[str] = None


class RouterReply(BaseModel):
    # user-facing text, never empty
    text: str
    intent: Optional[str] = None
    # structured payload (orders / products) when the branch has one
    data: Optional[Dict[str, Any]] = None


class ChatResponse(BaseModel):
    reply: str
    intent: Optional[str] = None
    data: Optional[Dict[str, Any]] = None


def _str(value: Any) -> str:
    return "" if value is None else str(value)


def _float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


class OrderRecord(BaseModel):
    id: str
    name: str = ""
    fulfillment_status: Optional[str] = None
    total_price: str = "0"
    currency: str = ""
    created_at: str = ""

    # contact fields the customer identifier is matched against
    phone: str = ""
    shipping_phone: str = ""
    note: str = ""

    customer_name: str = ""
    tracking_url: Optional[str] = None

    @classmethod
    def from_shopify(cls, data: Dict[str, Any]) -> "OrderRecord":
        shipping = data.get("shipping_address") or {}
        customer = data.get("customer") or {}
        name = " ".join(
            p for p in [_str(customer.get("first_name")).strip(), _str(customer.get("last_name")).strip()] if p
        )

        tracking_url = None
        for f in data.get("fulfillments") or []:
            if f.get("tracking_url"):
                tracking_url = f["tracking_url"]
                break

        total = data.get("current_total_price")
        if total in (None, ""):
            total = data.get("total_price")

        return cls(
            id=_str(data.get("id")),
            name=_str(data.get("name")),
            fulfillment_status=data.get("fulfillment_status"),
            total_price=_str(total) or "0",
            currency=_str(data.get("currency")),
            created_at=_str(data.get("created_at")),
            phone=_str(data.get("phone")),
            shipping_phone=_str(shipping.get("phone")),
            note=_str(data.get("note")),
            customer_name=name,
            tracking_url=tracking_url,
        )


class Product(BaseModel):
    id: str
    title: str = ""
    price: float = 0.0
    image_url: Optional[str] = None
    handle: str = ""
    available: bool = True
    updated_at: str = ""
    tags: List[str] = Field(default_factory=list)

    @classmethod
    def from_shopify(cls, data: Dict[str, Any]) -> "Product":
        variants = data.get("variants") or []
        first = variants[0] if variants else {}

        image = data.get("image") or {}
        image_url = image.get("src")
        if not image_url and data.get("images"):
            image_url = (data["images"][0] or {}).get("src")

        raw_tags = data.get("tags") or ""
        if isinstance(raw_tags, str):
            raw_tags = raw_tags.split(",")
        tags = [t.strip().lower() for t in raw_tags if t and t.strip()]

        return cls(
            id=_str(data.get("id")),
            title=_str(data.get("title")),
            price=_float(first.get("price")),
            image_url=image_url or None,
            handle=_str(data.get("handle")),
            available=any(_variant_available(v) for v in variants),
            updated_at=_str(data.get("updated_at")),
            tags=tags,
        )


def _variant_available(variant: Dict[str, Any]) -> bool:
    # untracked inventory or "continue selling" counts as available
    if variant.get("inventory_management") in (None, "") or variant.get("inventory_policy") == "continue":
        return True
    qty = variant.get("inventory_quantity")
    return qty is None or _float(qty) > 0
