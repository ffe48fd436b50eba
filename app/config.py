import os
from functools import lru_cache
from typing import List, Optional

from google.cloud import firestore
from pydantic import Field
from pydantic_settings import BaseSettings


LLM_MODES = {"stub", "local", "openai"}
ACTION_LOG_SINKS = {"stdout", "firestore"}


class Settings(BaseSettings):
    """Application settings loaded from environment variables (or .env)."""

    # Shopify Admin API
    SHOPIFY_STORE_URL: str = Field(default="", description="e.g. my-shop.myshopify.com")
    SHOPIFY_ACCESS_TOKEN: str = Field(default="")
    SHOPIFY_API_VERSION: str = Field(default="2024-10")

    # Storefront presentation
    STORE_NAME: str = Field(default="our store")
    STOREFRONT_URL: str = Field(default="", description="Public shop URL used for product links")
    CURRENCY_SYMBOL: str = Field(default="₹")

    # Completion service
    LLM_MODE: str = Field(default="stub", description="stub | local (ollama) | openai")
    LLM_MODEL: str = Field(default="gpt-4o-mini")
    OLLAMA_MODEL: str = Field(default="llama3.1:8b")
    OPENAI_API_KEY: str = Field(default="")
    OPENAI_BASE_URL: Optional[str] = Field(default=None)

    # Translation chain (comma-separated, tried in order). "google" uses deep-translator.
    TRANSLATION_PROVIDERS: str = Field(
        default="https://libretranslate.com/translate,google",
    )
    TRANSLATION_API_KEY: str = Field(default="")
    TARGET_LANGUAGE: str = Field(default="en")

    # Runtime
    HTTP_TIMEOUT: float = Field(default=10.0)
    LLM_TIMEOUT: float = Field(default=30.0)
    MAX_MESSAGE_CHARS: int = Field(default=2000)
    ACTION_LOG_SINK: str = Field(default="stdout", description="stdout | firestore")
    LOG_LEVEL: str = Field(default="INFO")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"

    @property
    def translation_providers(self) -> List[str]:
        return [p.strip() for p in self.TRANSLATION_PROVIDERS.split(",") if p.strip()]

    @property
    def storefront_url(self) -> str:
        base = self.STOREFRONT_URL.strip() or f"https://{self.SHOPIFY_STORE_URL.strip()}"
        return base.rstrip("/")

    @property
    def llm_mode(self) -> str:
        return self.LLM_MODE.lower().strip()


@lru_cache
def get_settings() -> Settings:
    return Settings()


def validate_settings(settings: Settings) -> Settings:
    """
    Fail fast on missing credentials/endpoints.
    Called once at startup so the router is never built with a broken config.
    """
    problems: List[str] = []

    if not settings.SHOPIFY_STORE_URL.strip():
        problems.append("SHOPIFY_STORE_URL is not set")
    if not settings.SHOPIFY_ACCESS_TOKEN.strip():
        problems.append("SHOPIFY_ACCESS_TOKEN is not set")

    if settings.llm_mode not in LLM_MODES:
        problems.append(f"LLM_MODE must be one of {sorted(LLM_MODES)}, got {settings.LLM_MODE!r}")
    elif settings.llm_mode == "openai" and not settings.OPENAI_API_KEY.strip():
        problems.append("OPENAI_API_KEY is required when LLM_MODE=openai")

    if not settings.translation_providers:
        problems.append("TRANSLATION_PROVIDERS must list at least one provider")

    if settings.ACTION_LOG_SINK.lower().strip() not in ACTION_LOG_SINKS:
        problems.append(f"ACTION_LOG_SINK must be one of {sorted(ACTION_LOG_SINKS)}")

    if problems:
        raise RuntimeError("Invalid configuration: " + "; ".join(problems))

    return settings


@lru_cache(maxsize=1)
def get_firestore_client():
    """
    Firestore client for the optional action_logs sink.
    Auth is provided via GOOGLE_APPLICATION_CREDENTIALS env var.
    """
    if not os.getenv("GOOGLE_APPLICATION_CREDENTIALS"):
        raise RuntimeError(
            "GOOGLE_APPLICATION_CREDENTIALS is not set. "
            "Set it or use ACTION_LOG_SINK=stdout."
        )

    return firestore.Client()
