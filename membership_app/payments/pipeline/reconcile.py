"""Per-event reconciliation shared by the webhook and backfill drivers."""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..events import Applied, Failed, PaymentEvent, ReconcileOutcome, Skipped
from ..settings import ProviderSettings
from .activity import refresh_activity_window
from .ledger import find_duplicate_payment, record_payment
from .resolver import resolve_member

logger = logging.getLogger(__name__)


def reconcile_event(session: Session, event: PaymentEvent, *, settings: ProviderSettings) -> ReconcileOutcome:
    """
    Resolve the member, record the payment and commit, as one unit.

    Returns :class:`Failed` (after rolling back) on any database error so the
    caller can decide how to surface it.
    """
    log_extra = {
        "payment_provider": event.source_provider.value,
        "provider_transaction_id": event.provider_transaction_id,
    }
    try:
        if settings.deduplicate_transactions:
            duplicate = find_duplicate_payment(
                session, event.source_provider.value, event.provider_transaction_id
            )
            if duplicate is not None:
                session.rollback()
                logger.info("Skipping duplicate transaction", extra={**log_extra, "payment_id": duplicate.id})
                return Skipped(
                    f"duplicate transaction {event.source_provider.value}:{event.provider_transaction_id}"
                )

        resolution = resolve_member(
            session,
            email=event.payer_email,
            first_name=event.payer_first_name,
            last_name=event.payer_last_name,
        )
        payment_id = record_payment(session, resolution.member_id, event)
        refresh_activity_window(session, resolution.member_id)
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error("Payment reconciliation failed: %s", exc, extra=log_extra)
        return Failed(str(exc))

    return Applied(
        member_id=resolution.member_id,
        payment_id=payment_id,
        created_member=resolution.created,
    )


def notify_if_created(outcome: ReconcileOutcome, event: PaymentEvent, notifier) -> ReconcileOutcome:
    """Send the welcome notification for a newly created member; runs after commit."""
    if notifier is None or not isinstance(outcome, Applied) or not outcome.created_member:
        return outcome
    result = notifier.send_welcome(outcome.member_id, event)
    if result.error:
        return Applied(
            member_id=outcome.member_id,
            payment_id=outcome.payment_id,
            created_member=True,
            notification_error=result.error,
        )
    return outcome
