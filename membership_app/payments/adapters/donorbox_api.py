"""
Donorbox read-API client used by the backfill driver.

Pages through ``GET /donations`` sequentially, starting at page 1, until the
API returns an empty array.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Iterator, List, Mapping

import requests

from ..settings import ProviderSettings


class DonorboxAPIError(RuntimeError):
    """Transport, timeout or response-shape failure for one page request."""

    def __init__(self, page: int, message: str) -> None:
        super().__init__(message)
        self.page = page


@dataclass(frozen=True)
class DonorboxPage:
    page: int
    donations: List[Mapping[str, Any]]


class DonorboxAPIClient:
    """Authenticated, timeout-bounded access to the Donorbox donations listing."""

    def __init__(
        self,
        *,
        session: requests.Session | None = None,
        base_url: str,
        email: str | None,
        api_key: str | None,
        timeout: float = 10.0,
        per_page: int = 100,
        logger: logging.Logger | None = None,
    ) -> None:
        self.session = session or requests.Session()
        self.base_url = base_url.rstrip("/")
        self.auth = (email or "", api_key or "")
        self.timeout = timeout
        self.per_page = max(1, int(per_page))
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_settings(cls, settings: ProviderSettings, *, session: requests.Session | None = None):
        return cls(
            session=session,
            base_url=settings.donorbox_api_url,
            email=settings.donorbox_api_email,
            api_key=settings.donorbox_api_key,
            timeout=settings.http_timeout_seconds,
            per_page=settings.donorbox_api_per_page,
        )

    @property
    def donations_url(self) -> str:
        return f"{self.base_url}/donations"

    def fetch_page(self, date_from: date, page: int) -> DonorboxPage:
        params = {"date_from": date_from.isoformat(), "page": page, "per_page": self.per_page}
        try:
            response = self.session.get(
                self.donations_url,
                params=params,
                auth=self.auth,
                timeout=self.timeout,
                headers={"Accept": "application/json"},
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            self.logger.warning(
                "Donorbox page request failed",
                extra={"page": page, "date_from": params["date_from"], "error": str(exc)},
            )
            raise DonorboxAPIError(page, str(exc)) from exc

        try:
            body = json.loads(response.text, parse_float=Decimal)
        except ValueError as exc:
            raise DonorboxAPIError(page, f"response is not JSON: {exc}") from exc
        if not isinstance(body, list):
            raise DonorboxAPIError(page, f"expected a JSON array, got {type(body).__name__}")

        self.logger.debug("Fetched Donorbox page", extra={"page": page, "record_count": len(body)})
        return DonorboxPage(page=page, donations=body)

    def iter_pages(self, date_from: date) -> Iterator[DonorboxPage]:
        """Yield non-empty pages in order; stops at the first empty page."""
        page_number = 1
        while True:
            page = self.fetch_page(date_from, page_number)
            if not page.donations:
                return
            yield page
            page_number += 1
