"""Prometheus counters for the payment pipeline."""

from __future__ import annotations

from typing import Literal

from prometheus_client import Counter

_webhook_events = Counter(
    "payment_webhook_events_total",
    "Inbound payment webhook events by provider and outcome.",
    ["provider", "outcome"],
)
_backfill_events = Counter(
    "payment_backfill_events_total",
    "Events processed by the Donorbox backfill by outcome.",
    ["outcome"],
)
_notifications = Counter(
    "payment_notifications_total",
    "Welcome notifications by delivery status.",
    ["status"],
)
_csv_imports = Counter(
    "payment_csv_imports_total",
    "GivingFuel CSV imports by status.",
    ["status"],
)

Outcome = Literal["applied", "skipped", "failed", "rejected", "invalid"]


def record_webhook_event(provider: str, outcome: Outcome) -> None:
    _webhook_events.labels(provider=provider, outcome=outcome).inc()


def record_backfill_event(outcome: Outcome) -> None:
    _backfill_events.labels(outcome=outcome).inc()


def record_notification(status: Literal["sent", "failed"]) -> None:
    _notifications.labels(status=status).inc()


def record_csv_import(status: Literal["success", "failure"]) -> None:
    _csv_imports.labels(status=status).inc()
