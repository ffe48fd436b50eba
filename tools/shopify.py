"""
Shopify Admin REST client.

Read-only access to orders and products. Every list call follows the
`Link: <...>; rel="next"` header until all pages are exhausted, so callers
always receive the complete collection.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from app.config import Settings
from app.models import OrderRecord, Product

logger = logging.getLogger(__name__)

PAGE_LIMIT = 250


class BackendError(RuntimeError):
    """The commerce backend failed or returned an unusable payload."""


class ShopifyClient:
    def __init__(self, settings: Settings, http: Optional[httpx.Client] = None):
        self.base_url = (
            f"https://{settings.SHOPIFY_STORE_URL.strip().rstrip('/')}"
            f"/admin/api/{settings.SHOPIFY_API_VERSION}"
        )
        self.headers = {
            "X-Shopify-Access-Token": settings.SHOPIFY_ACCESS_TOKEN,
            "Content-Type": "application/json",
        }
        self.timeout = settings.HTTP_TIMEOUT
        self._owns_http = http is None
        self._http = http or httpx.Client(timeout=self.timeout)

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    def _get(self, url: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        response = self._http.get(url, params=params, headers=self.headers, timeout=self.timeout)
        response.raise_for_status()
        return response

    def _get_all(self, resource: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        Fetch every page of /{resource}.json.
        Raises BackendError when a page has no `resource` collection at all.
        """
        url: Optional[str] = f"{self.base_url}/{resource}.json"
        page_params: Optional[Dict[str, Any]] = {**params, "limit": PAGE_LIMIT}
        items: List[Dict[str, Any]] = []

        while url:
            try:
                response = self._get(url, params=page_params)
                data = response.json()
            except httpx.HTTPError as e:
                raise BackendError(f"Shopify {resource} request failed: {e!r}") from e
            except ValueError as e:
                raise BackendError(f"Shopify {resource} returned invalid JSON") from e

            batch = data.get(resource) if isinstance(data, dict) else None
            if not isinstance(batch, list):
                raise BackendError(f"Shopify response has no '{resource}' collection")
            items.extend(batch)

            # page_info cursors carry the original filters, so params must not be resent
            next_link = response.links.get("next")
            url = next_link.get("url") if next_link else None
            page_params = None

        logger.debug(f"Fetched {len(items)} {resource} from Shopify")
        return items

    def list_orders(self, status: str = "any") -> List[OrderRecord]:
        raw = self._get_all("orders", {"status": status})
        return [OrderRecord.from_shopify(o) for o in raw]

    def find_orders_by_name(self, order_number: str) -> List[OrderRecord]:
        name = order_number.strip().lstrip("#")
        raw = self._get_all("orders", {"status": "any", "name": f"#{name}"})
        return [OrderRecord.from_shopify(o) for o in raw]

    def list_products(self) -> List[Product]:
        raw = self._get_all("products", {})
        return [Product.from_shopify(p) for p in raw]
