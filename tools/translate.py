from typing import Callable, List, Optional

import httpx
from deep_translator import GoogleTranslator

from tools.logs import log_action

GOOGLE_PROVIDER = "google"


class Translator:
    """
    Best-effort translation over an ordered provider chain.

    Providers are LibreTranslate-compatible URLs or "google" (deep-translator).
    The first provider that returns non-empty text wins; if every provider
    fails, the original text comes back unchanged.
    """

    def __init__(
        self,
        providers: List[str],
        timeout: float = 10.0,
        api_key: str = "",
        http: Optional[httpx.Client] = None,
        log: Callable[..., None] = log_action,
    ):
        self.providers = list(providers)
        self.timeout = timeout
        self.api_key = api_key
        self._owns_http = http is None
        self._http = http or httpx.Client(timeout=timeout)
        self._log = log

    def close(self) -> None:
        """Close the HTTP client if this translator created it."""
        if self._owns_http:
            self._http.close()

    def translate(self, text: str, target_language: str, request_id: str = "unknown") -> str:
        if not text or not text.strip():
            return text

        for provider in self.providers:
            try:
                translated = self._call(provider, text, target_language)
            except Exception as e:
                self._log(request_id, "translation_failed", {"provider": provider, "error": repr(e)})
                continue

            if translated and translated.strip():
                return translated

            self._log(request_id, "translation_failed", {"provider": provider, "error": "empty output"})

        return text

    def _call(self, provider: str, text: str, target_language: str) -> Optional[str]:
        if provider == GOOGLE_PROVIDER:
            return GoogleTranslator(source="auto", target=target_language).translate(text)

        body = {"q": text, "source": "auto", "target": target_language, "format": "text"}
        if self.api_key:
            body["api_key"] = self.api_key

        response = self._http.post(provider, json=body, timeout=self.timeout)
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            return None
        out = data.get("translatedText")
        return out if isinstance(out, str) else None
