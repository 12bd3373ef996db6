"""Webconnex (GivingFuel) webhook payload normalization."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Mapping

from ..events import EventNotApplicable, PaymentEvent, SourceProvider
from ..money import parse_amount
from ..settings import ProviderSettings
from .fields import (
    clean_text,
    normalize_email,
    optional_text,
    parse_iso_date,
    require_mapping,
    transaction_id_text,
)


def normalize_webconnex(
    payload: Any,
    *,
    settings: ProviderSettings,
    received_on: date | None = None,
) -> PaymentEvent:
    """
    Map a Webconnex ``{"data": {...}}`` payload onto a :class:`PaymentEvent`.

    Raises:
        EventNotApplicable: status is not ``completed`` or the form is not tracked.
        PaymentValidationError: a required field is missing or malformed.
    """
    data = require_mapping(require_mapping(payload, "payload").get("data"), "data")

    status = data.get("status")
    if status is not None and clean_text(status).lower() != "completed":
        raise EventNotApplicable(f"status {status!r} is not completed")

    form_id = data.get("formId")
    if form_id is not None and not settings.accepts_webconnex_form(form_id):
        raise EventNotApplicable(f"form {form_id} is not tracked")

    billing = require_mapping(data.get("billing"), "billing")
    name = billing.get("name") or {}
    name = require_mapping(name, "billing.name")

    if data.get("transactionDate"):
        effective = parse_iso_date(data["transactionDate"], "transactionDate")
    else:
        effective = received_on or datetime.now(timezone.utc).date()

    transaction_id = transaction_id_text(data.get("transactionId"))
    return PaymentEvent(
        source_provider=SourceProvider.WEBCONNEX,
        provider_transaction_id=transaction_id,
        payer_email=normalize_email(billing.get("email")),
        payer_first_name=clean_text(name.get("first")),
        payer_last_name=clean_text(name.get("last")),
        amount=parse_amount(data.get("total"), field_name="total"),
        payment_method=optional_text(billing.get("paymentMethod")) or SourceProvider.WEBCONNEX.value,
        effective_date=effective,
        reference_url=settings.webconnex_transaction_url(transaction_id),
        metadata=_metadata(data),
    )


def _metadata(data: Mapping[str, Any]) -> dict[str, object]:
    metadata: dict[str, object] = {}
    for key in ("formId", "formName", "orderNumber", "referral"):
        if data.get(key) not in (None, ""):
            metadata[key] = data[key]
    return metadata
