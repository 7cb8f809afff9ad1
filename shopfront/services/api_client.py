"""HTTP client for the external commerce backend.

Catalog, referral-click, order placement and order lookup all live behind
REST endpoints this app does not own. Nothing here retries: every call is a
single request, and callers decide how a failure is shown.
"""
from __future__ import annotations

import logging
from typing import Any, List, Optional

import httpx
from pydantic import ValidationError

from shopfront.config import settings
from shopfront.models import Product

logger = logging.getLogger(__name__)


class BackendError(Exception):
    """Non-2xx answer from the backend."""

    def __init__(self, message: str, status_code: int | None = None, details: dict | None = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class BackendUnavailable(Exception):
    """Backend could not be reached."""

    pass


def parse_product(data: Any) -> Optional[Product]:
    """Validates one catalog entry. Malformed entries are logged and dropped."""
    try:
        return Product.model_validate(data)
    except ValidationError as e:
        ident = data.get("id") if isinstance(data, dict) else None
        logger.warning("quarantined malformed product id=%s: %s", ident, e.errors())
        return None


def parse_products(payload: Any) -> List[Product]:
    if not isinstance(payload, list):
        logger.warning("catalog payload is not a list: %s", type(payload).__name__)
        return []
    out = []
    for item in payload:
        prod = parse_product(item)
        if prod is not None:
            out.append(prod)
    return out


def _error_message(response: httpx.Response, fallback: str) -> BackendError:
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        msg = data.get("message") or data.get("error") or fallback
        return BackendError(str(msg), status_code=response.status_code, details=data)
    return BackendError(fallback, status_code=response.status_code)


class BackendClient:
    def __init__(
        self,
        api_url: str | None = None,
        order_service_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_url = (api_url or settings.api_url).rstrip("/")
        self.order_service_url = (order_service_url or settings.order_service_url).rstrip("/")
        self.timeout = settings.http_timeout if timeout is None else timeout
        self.transport = transport

    def _client(self, base_url: str) -> httpx.Client:
        return httpx.Client(
            base_url=base_url,
            timeout=self.timeout,
            transport=self.transport,
            headers={"Content-Type": "application/json"},
        )

    # ---------------- catalog ----------------

    def list_products(self, strict: bool = False) -> List[Product]:
        """
        All catalog products. Returns [] when the backend is down or answers
        non-2xx, so pages still render.

        With ``strict=True`` those failures raise instead (used by checkout).

        Raises:
            BackendUnavailable: backend unreachable (strict only)
            BackendError: non-2xx or unreadable answer (strict only)
        """
        try:
            return self._fetch_products()
        except (BackendError, BackendUnavailable) as e:
            if strict:
                raise
            logger.error("catalog fetch failed: %s", e)
            return []

    def _fetch_products(self) -> List[Product]:
        try:
            with self._client(self.api_url) as client:
                response = client.get("/api/products")
        except httpx.RequestError as e:
            raise BackendUnavailable(str(e)) from e

        if response.status_code != 200:
            raise _error_message(response, f"Catalog fetch failed: HTTP {response.status_code}")
        try:
            payload = response.json()
        except ValueError:
            raise BackendError("Catalog answered with a non-JSON body", status_code=response.status_code)
        return parse_products(payload)

    def get_product(self, product_id: str) -> Optional[Product]:
        """
        One product, or None when the backend does not know it.

        Raises:
            BackendUnavailable: backend unreachable
            BackendError: any other non-2xx answer
        """
        try:
            with self._client(self.api_url) as client:
                response = client.get(f"/api/products/{product_id}")
        except httpx.RequestError as e:
            logger.error("catalog unavailable: %s", e)
            raise BackendUnavailable(str(e)) from e

        if response.status_code == 404:
            return None
        if response.status_code != 200:
            raise _error_message(response, "Error fetching product")
        try:
            payload = response.json()
        except ValueError:
            raise BackendError("Error fetching product", status_code=response.status_code)
        return parse_product(payload)

    # ---------------- referral ----------------

    def record_referral_click(self, agent_id: str) -> bool:
        """Best effort: failures are logged and reported as False, never raised."""
        try:
            with self._client(self.api_url) as client:
                response = client.post(f"/api/referral/click/{agent_id}")
        except httpx.RequestError as e:
            logger.warning("failed to record referral click agent=%s: %s", agent_id, e)
            return False
        if not response.is_success:
            logger.warning(
                "failed to record referral click agent=%s: HTTP %s", agent_id, response.status_code
            )
            return False
        return True

    # ---------------- orders ----------------

    def place_order(self, body: dict) -> dict:
        """
        Posts one order.

        Raises:
            BackendUnavailable: order service unreachable
            BackendError: non-2xx; carries the service's message verbatim
        """
        try:
            with self._client(self.order_service_url) as client:
                response = client.post("/api/orders/place", json=body)
        except httpx.RequestError as e:
            logger.error("order service unavailable: %s", e)
            raise BackendUnavailable(str(e)) from e

        if not response.is_success:
            err = _error_message(response, "Failed to place order")
            logger.warning("order rejected: HTTP %s %s", response.status_code, err.message)
            raise err
        try:
            data = response.json()
        except ValueError:
            raise BackendError("Order service returned an unreadable response", status_code=response.status_code)
        if not isinstance(data, dict):
            raise BackendError("Order service returned an unreadable response", status_code=response.status_code)
        return data

    def get_order(self, order_id: str) -> Optional[dict]:
        """Order details for the confirmation page; None on any failure."""
        try:
            with self._client(self.api_url) as client:
                response = client.get(f"/api/order/{order_id}")
        except httpx.RequestError as e:
            logger.error("order lookup unavailable: %s", e)
            return None
        if response.status_code != 200:
            logger.warning("order lookup failed id=%s: HTTP %s", order_id, response.status_code)
            return None
        try:
            data = response.json()
        except ValueError:
            return None
        return data if isinstance(data, dict) else None
