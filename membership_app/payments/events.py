"""
Canonical payment event, reconciliation outcomes and the pipeline error taxonomy.

Every provider payload is normalized into a :class:`PaymentEvent` as soon as it
is authenticated; nothing downstream of the normalizers sees provider fields.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Mapping, Union


class SourceProvider(str, enum.Enum):
    WEBCONNEX = "webconnex"
    DONORBOX = "donorbox"
    GIVINGFUEL_CSV = "givingfuel-csv"
    MANUAL = "manual"

    @property
    def display_name(self) -> str:
        return {
            SourceProvider.WEBCONNEX: "Webconnex",
            SourceProvider.DONORBOX: "Donorbox",
            SourceProvider.GIVINGFUEL_CSV: "GivingFuel",
            SourceProvider.MANUAL: "Manual",
        }[self]


class PaymentPipelineError(Exception):
    """Base exception for payment ingestion failures."""


class SignatureVerificationError(PaymentPipelineError):
    """Raised when a webhook body cannot be authenticated."""


class EventNotApplicable(PaymentPipelineError):
    """Raised by normalizers for well-formed events the system does not track."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class PaymentValidationError(PaymentPipelineError):
    """Raised when a payload or row is missing or has malformed fields."""


class NotificationError(PaymentPipelineError):
    """Raised by notification collaborators; never propagated to drivers."""


@dataclass(frozen=True)
class PaymentEvent:
    """Provider-agnostic representation of a single payment notification."""

    source_provider: SourceProvider
    provider_transaction_id: str | None
    payer_email: str
    payer_first_name: str
    payer_last_name: str
    amount: Decimal
    payment_method: str | None
    effective_date: date
    duration_months: int | None = None
    notes: str | None = None
    reference_url: str | None = None
    metadata: Mapping[str, object] = field(default_factory=dict)

    @property
    def payer_name(self) -> str:
        return f"{self.payer_first_name} {self.payer_last_name}".strip()


@dataclass(frozen=True)
class Applied:
    member_id: int
    payment_id: int
    created_member: bool
    notification_error: str | None = None


@dataclass(frozen=True)
class Skipped:
    reason: str


@dataclass(frozen=True)
class Failed:
    error: str


ReconcileOutcome = Union[Applied, Skipped, Failed]
