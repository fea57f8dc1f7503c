r"""frontend/utils/data_source.py

HTTP client for the GreenGrocer Ordering API.

Every fetch fails soft: transport errors, non-2xx responses and malformed
JSON are logged and turned into a fallback value plus a user-facing message,
so pages can render an empty state instead of crashing.
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar
from urllib.parse import quote

import requests

LOGGER = logging.getLogger(__name__)

API_URL = os.getenv("API_URL", "http://localhost:8000/api/v1")
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "30"))

T = TypeVar("T")


class FetchError(Exception):
    """Raised by :meth:`FetchResult.unwrap` when the fetch failed."""


@dataclass
class FetchResult(Generic[T]):
    """Payload of a fetch plus the error message shown when it failed."""

    data: T
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the payload, raising :class:`FetchError` if the fetch failed."""

        if self.error is not None:
            raise FetchError(self.error)
        return self.data


def _describe_error(exc: requests.RequestException) -> str:
    if isinstance(exc, requests.Timeout):
        return "The request timed out. Please retry in a moment."
    if isinstance(exc, requests.HTTPError) and exc.response is not None:
        try:
            body = exc.response.json()
        except ValueError:
            body = None
        detail = body.get("detail") if isinstance(body, dict) else None
        if isinstance(detail, dict):
            detail = detail.get("message")
        return f"API error ({exc.response.status_code}): {detail or exc.response.reason}"
    return f"Unable to reach the API: {exc}"


class DataSource:
    """Thin wrapper around the backend routes used by the dashboard."""

    def __init__(
        self,
        base_url: str = API_URL,
        headers: Optional[Callable[[], Dict[str, str]]] = None,
        timeout: float = REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._headers = headers or (lambda: {})
        self.timeout = timeout
        self.session = session or requests.Session()

    def _request(self, method: str, path: str, fallback: T, **kwargs: Any) -> FetchResult[T]:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method,
                url,
                headers=self._headers(),
                timeout=self.timeout,
                **kwargs,
            )
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as exc:
            LOGGER.warning("%s %s failed: %s", method, url, exc)
            return FetchResult(fallback, _describe_error(exc))
        except ValueError as exc:
            LOGGER.warning("%s %s returned invalid JSON: %s", method, url, exc)
            return FetchResult(fallback, "The API returned an unreadable response.")

        if type(payload) is not type(fallback):
            LOGGER.warning("%s %s returned unexpected payload type %s", method, url, type(payload))
            return FetchResult(fallback, "The API returned an unexpected response.")
        return FetchResult(payload)

    def _get_list(self, path: str, **params: Any) -> FetchResult[List[Any]]:
        return self._request("GET", path, [], params=params or None)

    # Reference data -----------------------------------------------------

    def fetch_users(self) -> FetchResult[List[Dict[str, Any]]]:
        return self._get_list("/users")

    def fetch_stores(self, region: Optional[str] = None) -> FetchResult[List[Dict[str, Any]]]:
        if region:
            return self._get_list("/stores", region=region)
        return self._get_list("/stores")

    def fetch_product_catalog(self) -> FetchResult[List[Dict[str, Any]]]:
        return self._get_list("/products")

    def fetch_justification_reasons(self) -> FetchResult[List[str]]:
        result = self._get_list("/justification-reasons")
        return FetchResult([str(reason) for reason in result.data], result.error)

    def login(self, email: str) -> FetchResult[Dict[str, Any]]:
        return self._request("POST", "/auth/login", {}, json={"email": email.strip()})

    # Store data ---------------------------------------------------------

    def fetch_recommendations(self, store_name: str) -> FetchResult[List[Dict[str, Any]]]:
        return self._get_list(f"/order-recommendations/{quote(store_name, safe='')}")

    def fetch_order_history(self, store_name: str) -> FetchResult[List[Dict[str, Any]]]:
        return self._get_list(f"/order-history/{quote(store_name, safe='')}")

    def fetch_spoilage(self, store_name: str) -> FetchResult[List[Dict[str, Any]]]:
        return self._get_list(f"/spoilage-data/{quote(store_name, safe='')}")

    def fetch_notifications(self, store_name: str) -> FetchResult[List[Dict[str, Any]]]:
        return self._get_list(f"/notifications/{quote(store_name, safe='')}")

    def submit_inventory_count(self, store_name: str, sku: str, count: int) -> FetchResult[Dict[str, Any]]:
        body = {"store_name": store_name, "sku": sku, "count": int(count)}
        return self._request("POST", "/inventory-counts", {}, json=body)

    # Aggregates ---------------------------------------------------------

    def fetch_regional_performance(self, region: str) -> FetchResult[List[Dict[str, Any]]]:
        return self._get_list(f"/regional-performance/{quote(region, safe='')}")

    def fetch_corporate_dashboard(self) -> FetchResult[Dict[str, Any]]:
        result = self._request("GET", "/corporate-dashboard", {})
        data = result.data or {}
        return FetchResult(
            {"kpis": list(data.get("kpis") or []), "performance": list(data.get("performance") or [])},
            result.error,
        )


class RefreshSequencer:
    """Hands out tickets so only the latest fetch per key may apply its result.

    ``begin`` returns a ticket for a new fetch; ``is_current`` tells whether
    that ticket is still the newest one issued for the key.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._latest: Dict[str, int] = {}

    def begin(self, key: str) -> int:
        with self._lock:
            ticket = self._latest.get(key, 0) + 1
            self._latest[key] = ticket
            return ticket

    def is_current(self, key: str, ticket: int) -> bool:
        with self._lock:
            return self._latest.get(key) == ticket

    def run(self, key: str, fetch: Callable[[], T]) -> Optional[T]:
        """Run ``fetch`` and return its result, or ``None`` if it went stale."""

        ticket = self.begin(key)
        result = fetch()
        if not self.is_current(key, ticket):
            LOGGER.info("Discarding stale response for %s (ticket %d)", key, ticket)
            return None
        return result
