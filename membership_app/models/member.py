"""
Member identity and payment ledger tables.

``members.email`` is the canonical identity: unique, stored lower-cased.
``payments`` carries provenance (``platform`` + ``transaction_id``) but no
uniqueness constraint on it; duplicate suppression belongs to the pipeline.
"""

from __future__ import annotations

import enum
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from .base import BaseModel, db, utcnow


def _today() -> date:
    return datetime.now(timezone.utc).date()


class PaymentPlatform(str, enum.Enum):
    """Provenance tag written to ``payments.platform``."""

    WEBCONNEX = "webconnex"
    DONORBOX = "donorbox"
    GIVINGFUEL_CSV = "givingfuel-csv"
    MANUAL = "manual"


class Member(BaseModel):
    """A person holding (or having held) a membership."""

    __tablename__ = "members"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(db.String(320), unique=True, nullable=False, index=True)
    first_name: Mapped[str] = mapped_column(db.String(100), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(db.String(100), nullable=False, default="")
    notes: Mapped[str | None] = mapped_column(db.Text, nullable=True)
    created_on: Mapped[date] = mapped_column(db.Date, nullable=False, default=_today)
    discord_id: Mapped[str | None] = mapped_column(db.String(32), nullable=True, index=True)
    consecutive_since: Mapped[date | None] = mapped_column(db.Date, nullable=True)
    consecutive_until: Mapped[date | None] = mapped_column(db.Date, nullable=True, index=True)
    cancelled: Mapped[bool] = mapped_column(db.Boolean, nullable=False, default=False)
    banned: Mapped[bool] = mapped_column(db.Boolean, nullable=False, default=False)
    reason_removed: Mapped[str | None] = mapped_column(db.Text, nullable=True)

    payments = relationship(
        "Payment",
        back_populates="member",
        cascade="all, delete-orphan",
        order_by="Payment.effective_on",
    )

    def __repr__(self):
        return f"<Member {self.id} {self.email}>"

    @validates("email")
    def _normalize_email(self, key, value):
        if value is None:
            raise ValueError("Member email is required")
        normalized = value.strip().lower()
        if not normalized:
            raise ValueError("Member email is required")
        return normalized

    def is_active(self, on: date | None = None) -> bool:
        """Whether the cached activity window covers ``on`` (default today)."""
        if self.cancelled or self.banned:
            return False
        if self.consecutive_until is None:
            return False
        return self.consecutive_until > (on or _today())

    def append_note(self, text: str, *, on: date | None = None) -> None:
        block = f"=== {(on or _today()).isoformat()} ===\n{text.strip()}"
        self.notes = f"{self.notes.rstrip()}\n\n{block}" if self.notes else block


class Payment(BaseModel):
    """An immutable ledger row; corrections are new rows with notes."""

    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(primary_key=True)
    member_id: Mapped[int] = mapped_column(ForeignKey("members.id"), nullable=False, index=True)
    effective_on: Mapped[date] = mapped_column(db.Date, nullable=False)
    created_on: Mapped[datetime] = mapped_column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    duration_months: Mapped[int] = mapped_column(db.Integer, nullable=False, default=1)
    amount_paid: Mapped[Decimal] = mapped_column(db.Numeric(10, 2, asdecimal=True), nullable=False)
    payment_method: Mapped[str | None] = mapped_column(db.String(100), nullable=True)
    platform: Mapped[str | None] = mapped_column(db.String(50), nullable=True)
    transaction_id: Mapped[str | None] = mapped_column(db.String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(db.Text, nullable=True)

    member = relationship("Member", back_populates="payments")

    # Provenance lookup only; deliberately not unique.
    __table_args__ = (Index("ix_payments_platform_transaction", "platform", "transaction_id"),)

    def __repr__(self):
        return f"<Payment {self.id} member={self.member_id} {self.amount_paid} on {self.effective_on}>"
