"""Payment ledger writes. Rows are immutable once inserted."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from membership_app.models import Member, Payment, PaymentPlatform

from ..events import PaymentEvent, PaymentValidationError
from ..money import parse_amount

logger = logging.getLogger(__name__)


def record_payment(session: Session, member_id: int, event: PaymentEvent) -> int:
    """
    Insert one payment for ``member_id`` and return its id.

    No duplicate check happens here: re-delivering the same provider
    transaction records a second row unless the caller filters it first.
    """
    if not isinstance(event.amount, Decimal):
        raise PaymentValidationError("amount must be a Decimal")
    payment = Payment(
        member_id=member_id,
        effective_on=event.effective_date,
        duration_months=event.duration_months or 1,
        amount_paid=event.amount,
        payment_method=event.payment_method,
        platform=event.source_provider.value,
        transaction_id=event.provider_transaction_id,
        notes=event.notes,
    )
    session.add(payment)
    session.flush()
    logger.info(
        "Recorded payment",
        extra={
            "payment_provider": event.source_provider.value,
            "member_id": member_id,
            "payment_id": payment.id,
            "provider_transaction_id": event.provider_transaction_id,
        },
    )
    return payment.id


def find_duplicate_payment(session: Session, platform: str, transaction_id: str | None) -> Payment | None:
    if not transaction_id:
        return None
    return session.execute(
        select(Payment)
        .where(Payment.platform == platform, Payment.transaction_id == transaction_id)
        .order_by(Payment.id)
        .limit(1)
    ).scalar_one_or_none()


def record_manual_payment(
    session: Session,
    member: Member,
    *,
    amount,
    effective_on: date,
    payment_method: str | None = None,
    duration_months: int = 1,
    notes: str | None = None,
    transaction_id: str | None = None,
) -> Payment:
    """Operator-entered payment; validated here since it skips the normalizers."""
    if duration_months is None or int(duration_months) < 1:
        raise PaymentValidationError("duration_months must be at least 1")
    payment = Payment(
        member_id=member.id,
        effective_on=effective_on,
        duration_months=int(duration_months),
        amount_paid=parse_amount(amount, field_name="amount_paid"),
        payment_method=payment_method or None,
        platform=PaymentPlatform.MANUAL.value,
        transaction_id=transaction_id or None,
        notes=notes or None,
    )
    session.add(payment)
    session.flush()
    return payment
