# app/main.py
import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.config import get_settings, validate_settings
from app.graph import SmartRouter
from app.logging_config import configure_logging
from app.models import ChatRequest, ChatResponse, RouterReply, TrackRequest
from tools.logs import log_action
from tools.orders import lookup_order_number, lookup_orders

logger = logging.getLogger(__name__)

# Fatal config problems stop the process here, before any request is served.
settings = validate_settings(get_settings())
configure_logging(settings)

router = SmartRouter(settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    router.close()


app = FastAPI(title="Smart Message Router", lifespan=lifespan)


def _client_error(status_code: int, error: str, message: str) -> HTTPException:
    return HTTPException(status_code=status_code, detail={"error": error, "message": message})


def _response(reply: RouterReply) -> ChatResponse:
    return ChatResponse(reply=reply.text, intent=reply.intent, data=reply.data)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"detail": {"error": "bad_request", "message": "Request body must be a JSON object."}},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.url.path}: {exc!r}", extra={"request_path": request.url.path})
    return JSONResponse(
        status_code=500,
        content={"detail": {"error": "internal_error", "message": "Something went wrong. Please try again."}},
    )


@app.post("/chat", response_model=ChatResponse)
def chat(req: ChatRequest):
    """
    Smart endpoint: translate -> classify -> dispatch.
    - 400 when message is missing/blank
    - 413 when message exceeds MAX_MESSAGE_CHARS
    """
    msg = (req.message or "").strip()
    if not msg:
        raise _client_error(400, "missing_message", "Please provide a 'message' to send.")

    if len(msg) > settings.MAX_MESSAGE_CHARS:
        raise _client_error(
            413,
            "payload_too_large",
            f"Message too long. Max is {settings.MAX_MESSAGE_CHARS} chars.",
        )

    return _response(router.route(msg))


@app.post("/track", response_model=ChatResponse)
def track(req: TrackRequest):
    """Direct order lookup by mobile number (or its last digits), no classification."""
    mobile = (req.mobile or "").strip()
    if not mobile:
        raise _client_error(400, "missing_mobile", "Please provide the 'mobile' number used for the order.")

    reply = lookup_orders(mobile, router.shop)
    matches = len((reply.data or {}).get("orders", []))
    log_action(uuid.uuid4().hex, "handler", {"handler": "track_direct", "matches": matches}, settings=settings)
    return _response(reply)


@app.get("/track/{order_number}", response_model=ChatResponse)
def track_order_number(order_number: str):
    return _response(lookup_order_number(order_number, router.shop))


@app.get("/health")
def health():
    return {"status": "ok"}
