from enum import Enum
from typing import Optional


class Intent(str, Enum):
    TRACK = "track"
    PRODUCT = "product"
    FAQ = "faq"
    CHAT = "chat"


INTENT_LABELS = tuple(i.value for i in Intent)


def parse_intent(raw: Optional[str]) -> Intent:
    """
    Coerce untrusted completion output into the closed Intent enum.
    Only an exact label (after trim + lowercase) is accepted; anything else is CHAT.
    """
    label = (raw or "").strip().lower()
    if label in INTENT_LABELS:
        return Intent(label)
    return Intent.CHAT
