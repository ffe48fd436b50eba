import logging
import uuid
from functools import partial
from typing import TypedDict, List, Dict, Any, Optional

from langgraph.graph import StateGraph, END

from app.config import Settings
from app.models import RouterReply
from llm.client import LLMClient, classify_intent, chat_reply
from llm.schemas import Intent
from policies.faq import answer_faq
from tools.logs import log_action
from tools.orders import extract_identifier, lookup_orders
from tools.products import discover_products
from tools.shopify import ShopifyClient
from tools.translate import Translator

logger = logging.getLogger(__name__)

FAILURE_REPLY = (
    "Sorry, I couldn't complete your request right now. Please try again in a moment."
)

BRANCHES = {
    Intent.TRACK: "track",
    Intent.PRODUCT: "product",
    Intent.FAQ: "faq",
    Intent.CHAT: "chat",
}


class RouterState(TypedDict, total=False):
    request_id: str
    message: str
    text: str  # message in the working language

    intent: Optional[str]
    reply: str
    data: Optional[Dict[str, Any]]
    actions: List[Dict[str, Any]]


class SmartRouter:
    """
    translate -> understand -> {track | product | faq | chat} -> reply

    Collaborators are built from settings unless passed in, so tests can hand
    in fakes. The compiled graph holds no per-request state.
    """

    def __init__(
        self,
        settings: Settings,
        shop: Optional[ShopifyClient] = None,
        translator: Optional[Translator] = None,
        llm: Optional[LLMClient] = None,
    ):
        self.settings = settings
        self._owned: List[Any] = []
        if shop is None:
            shop = ShopifyClient(settings)
            self._owned.append(shop)
        if translator is None:
            translator = Translator(
                settings.translation_providers,
                timeout=settings.HTTP_TIMEOUT,
                api_key=settings.TRANSLATION_API_KEY,
                log=partial(log_action, settings=settings),
            )
            self._owned.append(translator)
        self.shop = shop
        self.translator = translator
        self.llm = llm or LLMClient(settings)
        self.graph = self.build_graph()

    def close(self) -> None:
        """Release HTTP clients built here; injected collaborators are left alone."""
        for component in self._owned:
            component.close()
        self._owned = []

    # -------------------------
    # helpers
    # -------------------------
    def _log(self, state: RouterState, event_type: str, payload: dict) -> None:
        log_action(state.get("request_id", "unknown"), event_type, payload, settings=self.settings)

    def _fail(self, state: RouterState, where: str, e: Exception) -> RouterState:
        self._log(state, "error", {"where": where, "error": repr(e)})
        state["actions"].append({"error": where})
        state["reply"] = FAILURE_REPLY
        state["data"] = None
        return state

    def _apply(self, state: RouterState, reply: RouterReply, handler: str) -> RouterState:
        state["reply"] = reply.text
        state["data"] = reply.data
        state["actions"].append({"handler": handler})
        self._log(state, "handler", {"handler": handler, "has_data": reply.data is not None})
        return state

    # -------------------------
    # nodes
    # -------------------------
    def translate_node(self, state: RouterState) -> RouterState:
        state.setdefault("actions", [])
        state.setdefault("reply", "")
        state.setdefault("data", None)
        state.setdefault("intent", None)

        msg = state.get("message", "") or ""
        text = self.translator.translate(
            msg, self.settings.TARGET_LANGUAGE, request_id=state.get("request_id", "unknown")
        )
        state["text"] = text

        changed = text != msg
        state["actions"].append({"translation": {"changed": changed}})
        self._log(state, "translation", {"changed": changed, "target": self.settings.TARGET_LANGUAGE})
        return state

    def understand_node(self, state: RouterState) -> RouterState:
        try:
            intent = classify_intent(state.get("text", ""), self.llm)
        except Exception as e:
            return self._fail(state, "understand_node:classify", e)

        state["intent"] = intent.value
        state["actions"].append({"intent": intent.value})
        self._log(state, "intent", {"intent": intent.value})
        return state

    def track_node(self, state: RouterState) -> RouterState:
        # identifier comes from the raw message, not the translation
        fragment = extract_identifier(state.get("message", ""))
        try:
            reply = lookup_orders(fragment, self.shop)
        except Exception as e:
            return self._fail(state, "track_node", e)
        return self._apply(state, reply, "track")

    def product_node(self, state: RouterState) -> RouterState:
        try:
            reply = discover_products(state.get("text", ""), self.shop, self.settings)
        except Exception as e:
            return self._fail(state, "product_node", e)
        return self._apply(state, reply, "product")

    def faq_node(self, state: RouterState) -> RouterState:
        return self._apply(state, answer_faq(state.get("text", "")), "faq")

    def chat_node(self, state: RouterState) -> RouterState:
        try:
            text = chat_reply(state.get("text", ""), self.llm)
        except Exception as e:
            return self._fail(state, "chat_node", e)
        return self._apply(state, RouterReply(text=text, intent=Intent.CHAT.value), "chat")

    def pick_branch(self, state: RouterState) -> str:
        if not state.get("intent"):
            # classification failed, reply already set
            return "end"
        return BRANCHES[Intent(state["intent"])]

    def build_graph(self):
        g = StateGraph(RouterState)

        g.add_node("translate", self.translate_node)
        g.add_node("understand", self.understand_node)
        g.add_node("track", self.track_node)
        g.add_node("product", self.product_node)
        g.add_node("faq", self.faq_node)
        g.add_node("chat", self.chat_node)

        g.set_entry_point("translate")
        g.add_edge("translate", "understand")
        g.add_conditional_edges(
            "understand",
            self.pick_branch,
            {"track": "track", "product": "product", "faq": "faq", "chat": "chat", "end": END},
        )
        for branch in ("track", "product", "faq", "chat"):
            g.add_edge(branch, END)

        return g.compile()

    # -------------------------
    # entry point
    # -------------------------
    def route(self, message: str, request_id: Optional[str] = None) -> RouterReply:
        """Always returns a reply with non-empty text."""
        rid = request_id or uuid.uuid4().hex
        state: RouterState = {
            "request_id": rid,
            "message": message or "",
            "actions": [],
            "reply": "",
            "data": None,
            "intent": None,
        }

        try:
            out = self.graph.invoke(state)
        except Exception as e:
            logger.exception("Router graph failed", extra={"request_id": rid})
            log_action(rid, "error", {"where": "route", "error": repr(e)}, settings=self.settings)
            return RouterReply(text=FAILURE_REPLY)

        text = (out.get("reply") or "").strip()
        if not text:
            return RouterReply(text=FAILURE_REPLY, intent=out.get("intent"))

        return RouterReply(text=text, intent=out.get("intent"), data=out.get("data"))
