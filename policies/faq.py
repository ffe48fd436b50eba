from typing import Tuple

from app.models import RouterReply


# Order is part of behaviour: the first keyword found in the message wins.
FAQ_ENTRIES: Tuple[Tuple[str, str], ...] = (
    (
        "return",
        "You can return most items within 7 days of delivery. "
        "Items must be unused and in their original packaging.",
    ),
    (
        "refund",
        "Refunds are issued to the original payment method within 5-7 business days "
        "after we receive the returned item.",
    ),
    (
        "exchange",
        "Size or colour exchanges are free within 7 days of delivery, subject to stock.",
    ),
    (
        "cancel",
        "Orders can be cancelled before they are shipped. Share your order number and we'll help.",
    ),
    (
        "cash on delivery",
        "Yes, cash on delivery is available on most pin codes.",
    ),
    (
        "payment",
        "We accept UPI, credit/debit cards, net banking and cash on delivery.",
    ),
    (
        "shipping",
        "Orders are shipped within 1-2 business days and usually arrive in 3-5 days. "
        "Shipping is free on orders above ₹999.",
    ),
    (
        "delivery",
        "Delivery usually takes 3-5 business days after dispatch.",
    ),
    (
        "contact",
        "You can reach our support team by replying here or emailing support@example.com.",
    ),
)

FALLBACK_REPLY = (
    "Sorry, I didn't understand that. You can ask me about returns, refunds, "
    "shipping, payments or cancellations."
)


def answer_faq(text: str) -> RouterReply:
    msg = (text or "").lower()
    for keyword, answer in FAQ_ENTRIES:
        if keyword in msg:
            return RouterReply(text=answer, intent="faq", data={"keyword": keyword})
    return RouterReply(text=FALLBACK_REPLY, intent="faq")
