"""
Webconnex public-API client.

Only one lookup is needed: the order a transaction belongs to, so operators
can be sent to the matching GivingFuel order report.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

import requests

from ..settings import ProviderSettings

ORDER_REPORT_URL = "https://manage.webconnex.com/reports/orders/{order_id}/donations/{txid}"


class WebconnexAPIError(RuntimeError):
    """Transport, timeout or response-shape failure for a transaction lookup."""


def order_report_url(order_id: int, transaction_id: int) -> str:
    return ORDER_REPORT_URL.format(order_id=order_id, txid=transaction_id)


class WebconnexAPIClient:
    def __init__(
        self,
        *,
        session: requests.Session | None = None,
        base_url: str,
        api_key: str | None,
        product: str = "givingfuel.com",
        timeout: float = 10.0,
        logger: logging.Logger | None = None,
    ) -> None:
        self.session = session or requests.Session()
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.product = product
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_settings(cls, settings: ProviderSettings, *, session: requests.Session | None = None):
        return cls(
            session=session,
            base_url=settings.webconnex_api_url,
            api_key=settings.webconnex_api_key,
            product=settings.webconnex_product,
            timeout=settings.http_timeout_seconds,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def lookup_order_id(self, transaction_id: int) -> int:
        """Return the order id for ``transaction_id`` via ``GET /search/transactions/<id>``."""
        if not self.api_key:
            raise WebconnexAPIError("WEBCONNEX_API_KEY is not configured")
        try:
            response = self.session.get(
                f"{self.base_url}/search/transactions/{transaction_id}",
                params={"product": self.product},
                headers={"apiKey": self.api_key, "Accept": "application/json"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            body: Any = response.json()
        except requests.RequestException as exc:
            self.logger.warning(
                "Webconnex transaction lookup failed",
                extra={"provider_transaction_id": transaction_id, "error": str(exc)},
            )
            raise WebconnexAPIError(str(exc)) from exc
        except ValueError as exc:
            raise WebconnexAPIError(f"response is not JSON: {exc}") from exc

        data = body.get("data") if isinstance(body, Mapping) else None
        order_id = data.get("orderId") if isinstance(data, Mapping) else None
        if isinstance(order_id, bool) or not isinstance(order_id, int):
            raise WebconnexAPIError("response carried no integer data.orderId")
        return order_id
