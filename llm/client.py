import logging
import re
import subprocess
from pathlib import Path
from typing import Dict, Any

from openai import OpenAI, OpenAIError

from app.config import Settings
from llm.schemas import Intent, parse_intent

logger = logging.getLogger(__name__)

# Prompt files
PROMPTS_DIR = Path(__file__).resolve().parent.parent / "prompts"
CLASSIFY_PROMPT_PATH = PROMPTS_DIR / "classify_v1.md"
CHAT_PROMPT_PATH = PROMPTS_DIR / "chat_v1.md"

STUB_CHAT_REPLY = (
    "Hi! I'm the {store_name} assistant. I can track your order, help you find products, "
    "or answer questions about returns, shipping and payments."
)


class LLMError(RuntimeError):
    """The completion service could not produce an answer (unreachable, failed, empty)."""


# ---------------------------
# Generic prompt helpers
# ---------------------------
def load_text(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def render_template(template: str, vars: Dict[str, Any]) -> str:
    """
    Simple template renderer for {var} placeholders.
    """
    out = template
    for k, v in vars.items():
        out = out.replace("{" + k + "}", "" if v is None else str(v))
    return out


# ---------------------------
# Completion service
# ---------------------------
class LLMClient:
    """
    complete(system_instruction, user_text) over the configured backend.

    LLM_MODE:
      - local: Ollama subprocess
      - openai: OpenAI-compatible chat completions
      - stub: no completion backend; callers use their deterministic fallbacks
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.mode = settings.llm_mode
        self._openai = None

    def complete(self, system_instruction: str, user_text: str) -> str:
        if self.mode == "local":
            return self._ollama_complete(system_instruction, user_text)
        if self.mode == "openai":
            return self._openai_complete(system_instruction, user_text)
        raise LLMError(f"No completion backend in LLM_MODE={self.mode!r}")

    def _ollama_complete(self, system_instruction: str, user_text: str) -> str:
        model = self.settings.OLLAMA_MODEL
        prompt = f"{system_instruction.strip()}\n\nCustomer message:\n{user_text}\n"

        try:
            proc = subprocess.run(
                ["ollama", "run", model],
                input=prompt.encode("utf-8"),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                check=False,
                timeout=self.settings.LLM_TIMEOUT,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise LLMError(f"ollama call failed: {e!r}") from e

        if proc.returncode != 0:
            err = proc.stderr.decode("utf-8", errors="ignore").strip()
            raise LLMError(f"ollama exited with {proc.returncode}: {err[:200]}")

        out = proc.stdout.decode("utf-8", errors="ignore").strip()
        if not out:
            raise LLMError("ollama returned an empty completion")
        return out

    def _client(self) -> OpenAI:
        if self._openai is None:
            self._openai = OpenAI(
                api_key=self.settings.OPENAI_API_KEY,
                base_url=self.settings.OPENAI_BASE_URL or None,
                timeout=self.settings.LLM_TIMEOUT,
            )
        return self._openai

    def _openai_complete(self, system_instruction: str, user_text: str) -> str:
        try:
            resp = self._client().chat.completions.create(
                model=self.settings.LLM_MODEL,
                messages=[
                    {"role": "system", "content": system_instruction},
                    {"role": "user", "content": user_text},
                ],
                temperature=0,
            )
            content = resp.choices[0].message.content
        except OpenAIError as e:
            raise LLMError(f"completion request failed: {e!r}") from e
        except (IndexError, AttributeError) as e:
            raise LLMError(f"malformed completion response: {e!r}") from e

        if not content or not content.strip():
            raise LLMError("completion service returned an empty message")
        return content.strip()


# ---------------------------
# Intent classification
# ---------------------------
def _normalize_msg(user_message: str) -> str:
    m = (user_message or "").lower()
    m = re.sub(r"\s+", " ", m).strip()
    return m


def _stub_label(user_message: str) -> str:
    msg = _normalize_msg(user_message)

    if any(p in msg for p in ["track", "where is my", "order status", "delivery status", "shipped yet"]):
        return "track"

    if any(
        p in msg
        for p in ["return", "refund", "exchange", "policy", "cancel", "payment", "cash on delivery", "shipping"]
    ):
        return "faq"

    if "order" in msg:
        return "track"

    if any(
        p in msg
        for p in [
            "show", "buy", "price", "under", "gift", "product", "looking for",
            "best", "top", "discount", "offer", "cheap", "surprise", "recommend",
        ]
    ):
        return "product"

    return "chat"


def classify_intent(text: str, llm: LLMClient) -> Intent:
    """
    One completion call constrained to the four labels, coerced by parse_intent.
    LLMError propagates: a dead classifier is not the same as an unparsed label.
    """
    if llm.mode == "stub":
        return parse_intent(_stub_label(text))

    raw = llm.complete(load_text(CLASSIFY_PROMPT_PATH), text)
    intent = parse_intent(raw)
    if intent is Intent.CHAT and raw.strip().lower() != Intent.CHAT.value:
        logger.info(f"Unrecognised classifier label {raw[:40]!r}, defaulting to chat")
    return intent


# ---------------------------
# Open-ended chat
# ---------------------------
def chat_reply(text: str, llm: LLMClient) -> str:
    store_name = llm.settings.STORE_NAME
    if llm.mode == "stub":
        return render_template(STUB_CHAT_REPLY, {"store_name": store_name})

    system_instruction = render_template(load_text(CHAT_PROMPT_PATH), {"store_name": store_name})
    return llm.complete(system_instruction, text)
