"""Donorbox donation normalization (webhook and read API share the shape)."""

from __future__ import annotations

from typing import Any

from ..events import EventNotApplicable, PaymentEvent, PaymentValidationError, SourceProvider
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

ACCEPTED_STATUSES = frozenset({"paid", "completed"})
DONATION_URL = "https://donorbox.org/org_admin/donations/{id}"


def unwrap_webhook_body(body: Any) -> Any:
    """Webhook bodies are a JSON array holding exactly one donation."""
    if not isinstance(body, list) or len(body) != 1:
        raise PaymentValidationError("Donorbox webhook body must be an array of exactly one donation")
    return body[0]


def normalize_donorbox(donation: Any, *, settings: ProviderSettings) -> PaymentEvent:
    """
    Map one Donorbox donation onto a :class:`PaymentEvent`.

    The recorded amount is ``net_amount`` (after platform fees).
    """
    donation = require_mapping(donation, "donation")

    action = donation.get("action")
    if action is not None and clean_text(action).lower() != "new":
        raise EventNotApplicable(f"action {action!r} is not new")

    status = donation.get("status")
    if status is not None and clean_text(status).lower() not in ACCEPTED_STATUSES:
        raise EventNotApplicable(f"status {status!r} is not paid")

    campaign = require_mapping(donation.get("campaign"), "campaign")
    if not settings.accepts_donorbox_campaign(campaign.get("id")):
        raise EventNotApplicable(f"campaign {campaign.get('id')} is not tracked")

    donor = require_mapping(donation.get("donor"), "donor")
    transaction_id = transaction_id_text(donation.get("id"))

    metadata: dict[str, object] = {"campaign_id": campaign.get("id")}
    if donation.get("amount") is not None:
        metadata["gross_amount"] = str(parse_amount(donation["amount"], field_name="amount"))
    for key in ("donation_type", "recurring", "comment", "join_mailing_list"):
        if donation.get(key) not in (None, ""):
            metadata[key] = donation[key]

    return PaymentEvent(
        source_provider=SourceProvider.DONORBOX,
        provider_transaction_id=transaction_id,
        payer_email=normalize_email(donor.get("email")),
        payer_first_name=clean_text(donor.get("first_name")),
        payer_last_name=clean_text(donor.get("last_name")),
        amount=parse_amount(donation.get("net_amount"), field_name="net_amount"),
        payment_method=optional_text(donation.get("donation_type")) or SourceProvider.DONORBOX.value,
        effective_date=parse_iso_date(donation.get("donation_date"), "donation_date"),
        notes=optional_text(donation.get("comment")),
        reference_url=DONATION_URL.format(id=transaction_id),
        metadata=metadata,
    )
