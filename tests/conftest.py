"""
Test configuration and fixtures.

Environment is set BEFORE any import of app.config / app.main so the app
module can validate settings at import time without real credentials.
"""

import os
import random
from typing import List, Optional

import pytest

os.environ.setdefault("SHOPIFY_STORE_URL", "test-shop.myshopify.com")
os.environ.setdefault("SHOPIFY_ACCESS_TOKEN", "shpat_test_token")
os.environ.setdefault("LLM_MODE", "stub")
os.environ.setdefault("ACTION_LOG_SINK", "stdout")
os.environ.setdefault("TRANSLATION_PROVIDERS", "https://translate.test/translate")

from app.config import Settings  # noqa: E402
from app.models import OrderRecord, Product  # noqa: E402
from llm.client import LLMError  # noqa: E402
from tools.shopify import BackendError  # noqa: E402


class FakeShop:
    """In-memory stand-in for ShopifyClient that records calls."""

    def __init__(
        self,
        orders: Optional[List[OrderRecord]] = None,
        products: Optional[List[Product]] = None,
        fail: bool = False,
    ):
        self.orders = orders or []
        self.products = products or []
        self.fail = fail
        self.calls: List[str] = []

    def list_orders(self, status: str = "any") -> List[OrderRecord]:
        self.calls.append(f"list_orders:{status}")
        if self.fail:
            raise BackendError("backend down")
        return list(self.orders)

    def find_orders_by_name(self, order_number: str) -> List[OrderRecord]:
        self.calls.append(f"find_orders_by_name:{order_number}")
        if self.fail:
            raise BackendError("backend down")
        return [o for o in self.orders if o.name == f"#{order_number}"]

    def list_products(self) -> List[Product]:
        self.calls.append("list_products")
        if self.fail:
            raise BackendError("no 'products' collection")
        return list(self.products)


class FakeLLM:
    """LLMClient double: returns queued completions or raises LLMError."""

    def __init__(self, settings: Settings, outputs: Optional[List[str]] = None, fail: bool = False):
        self.settings = settings
        self.mode = "openai"
        self.outputs = list(outputs or [])
        self.fail = fail
        self.calls: List[tuple] = []

    def complete(self, system_instruction: str, user_text: str) -> str:
        self.calls.append((system_instruction, user_text))
        if self.fail:
            raise LLMError("completion service unreachable")
        return self.outputs.pop(0) if self.outputs else ""


class PassthroughTranslator:
    def __init__(self, result: Optional[str] = None):
        self.result = result
        self.calls: List[str] = []

    def translate(self, text: str, target_language: str, request_id: str = "unknown") -> str:
        self.calls.append(text)
        return self.result if self.result is not None else text


def make_order(**overrides) -> OrderRecord:
    data = {
        "id": "1",
        "name": "#1001",
        "fulfillment_status": None,
        "total_price": "499.00",
        "currency": "INR",
        "created_at": "2024-10-03T10:00:00+05:30",
        "customer_name": "Asha Rao",
    }
    data.update(overrides)
    return OrderRecord(**data)


def make_product(id: str, price: float, **overrides) -> Product:
    data = {
        "id": id,
        "title": f"Product {id}",
        "price": price,
        "handle": f"product-{id}",
        "image_url": f"https://cdn.test/{id}.jpg",
        "available": True,
        "updated_at": "2024-10-01T00:00:00Z",
        "tags": [],
    }
    data.update(overrides)
    return Product(**data)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        SHOPIFY_STORE_URL="test-shop.myshopify.com",
        SHOPIFY_ACCESS_TOKEN="shpat_test_token",
        STORE_NAME="Test Store",
        CURRENCY_SYMBOL="₹",
        LLM_MODE="stub",
        TRANSLATION_PROVIDERS="https://translate.test/translate",
        ACTION_LOG_SINK="stdout",
    )


@pytest.fixture
def rng() -> random.Random:
    return random.Random(42)


@pytest.fixture
def shop_factory():
    return FakeShop


@pytest.fixture
def llm_factory(settings):
    def _make(outputs: Optional[List[str]] = None, fail: bool = False) -> FakeLLM:
        return FakeLLM(settings, outputs=outputs, fail=fail)

    return _make


@pytest.fixture
def translator() -> PassthroughTranslator:
    return PassthroughTranslator()


@pytest.fixture
def order_factory():
    return make_order


@pytest.fixture
def product_factory():
    return make_product


@pytest.fixture
def translator_factory():
    return PassthroughTranslator
