"""Immutable provider configuration handed to every driver."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

WEBCONNEX_TRANSACTION_PATH = "/.webconnex/redirect/transaction/{txid}"


def _as_id_tuple(value: Any) -> tuple[int, ...]:
    if not value:
        return ()
    if isinstance(value, (str, bytes)):
        value = str(value).split(",")
    ids: list[int] = []
    for item in value:
        try:
            ids.append(int(str(item).strip()))
        except ValueError:
            continue
    return tuple(ids)


@dataclass(frozen=True)
class ProviderSettings:
    """Secrets, allow-lists and outbound limits for the payment providers."""

    webconnex_new_member_secret: str | None = None
    webconnex_payment_success_secret: str | None = None
    webconnex_form_ids: tuple[int, ...] = ()
    donorbox_secret: str | None = None
    donorbox_campaign_ids: tuple[int, ...] = ()
    donorbox_api_url: str = "https://donorbox.org/api/v1"
    donorbox_api_email: str | None = None
    donorbox_api_key: str | None = None
    donorbox_api_per_page: int = 100
    webconnex_api_url: str = "https://api.webconnex.com/v2/public"
    webconnex_api_key: str | None = None
    webconnex_product: str = "givingfuel.com"
    public_base_url: str | None = None
    http_timeout_seconds: float = 10.0
    deduplicate_transactions: bool = False

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "ProviderSettings":
        return cls(
            webconnex_new_member_secret=config.get("WEBCONNEX_NEW_MEMBER_HMAC"),
            webconnex_payment_success_secret=config.get("WEBCONNEX_PAYMENT_SUCCESS_HMAC"),
            webconnex_form_ids=_as_id_tuple(config.get("WEBCONNEX_FORM_IDS")),
            donorbox_secret=config.get("DONORBOX_HMAC"),
            donorbox_campaign_ids=_as_id_tuple(config.get("DONORBOX_CAMPAIGN_IDS")),
            donorbox_api_url=config.get("DONORBOX_API_URL") or cls.donorbox_api_url,
            donorbox_api_email=config.get("DONORBOX_API_EMAIL"),
            donorbox_api_key=config.get("DONORBOX_API_KEY"),
            donorbox_api_per_page=int(config.get("DONORBOX_API_PER_PAGE") or 100),
            webconnex_api_url=config.get("WEBCONNEX_API_URL") or cls.webconnex_api_url,
            webconnex_api_key=config.get("WEBCONNEX_API_KEY"),
            webconnex_product=config.get("WEBCONNEX_PRODUCT") or cls.webconnex_product,
            public_base_url=config.get("PUBLIC_BASE_URL"),
            http_timeout_seconds=float(config.get("PAYMENTS_HTTP_TIMEOUT_SECONDS") or 10.0),
            deduplicate_transactions=bool(config.get("PAYMENTS_DEDUPLICATE_TRANSACTIONS", False)),
        )

    def accepts_webconnex_form(self, form_id: Any) -> bool:
        if not self.webconnex_form_ids:
            return True
        try:
            return int(form_id) in self.webconnex_form_ids
        except (TypeError, ValueError):
            return False

    def accepts_donorbox_campaign(self, campaign_id: Any) -> bool:
        try:
            return int(campaign_id) in self.donorbox_campaign_ids
        except (TypeError, ValueError):
            return False

    def webconnex_transaction_url(self, transaction_id: Any) -> str | None:
        """Absolute link to the order-report redirect; ``None`` without a public base URL."""
        if not self.public_base_url:
            return None
        txid = str(transaction_id or "").strip()
        if not txid.isdigit():
            return None
        return f"{self.public_base_url.rstrip('/')}{WEBCONNEX_TRANSACTION_PATH.format(txid=txid)}"
