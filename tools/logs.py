import logging
from datetime import datetime, timezone
from typing import Optional

from app.config import Settings, get_firestore_client, get_settings

logger = logging.getLogger("actions")


def log_action(
    request_id: str,
    event_type: str,
    payload: dict,
    settings: Optional[Settings] = None,
) -> None:
    """
    Structured log for every translation / intent / handler / error event.
    Always goes to the "actions" logger; mirrored to the Firestore
    collection action_logs when ACTION_LOG_SINK=firestore.
    """
    settings = settings or get_settings()
    record = {
        "request_id": request_id or "unknown",
        "event_type": event_type,  # translation | translation_failed | intent | handler | error
        "payload": payload,
        "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    }

    level = logging.WARNING if event_type in {"error", "translation_failed"} else logging.INFO
    logger.log(
        level,
        event_type,
        extra={"request_id": record["request_id"], "event_type": event_type, "payload": payload},
    )

    if settings.ACTION_LOG_SINK.lower().strip() != "firestore":
        return

    try:
        db = get_firestore_client()
        db.collection("action_logs").add(record)
    except Exception as e:
        # a failed mirror write is logged, never raised
        logger.warning(f"Failed to write action log to Firestore: {e!r}")
