"""
Donorbox backfill driver.

Fetches pages strictly one after another and reconciles each donation in its
own transaction. Bad donations are counted and reported, never fatal; a page
transport failure stops pagination but keeps everything already committed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, List, Mapping

from sqlalchemy.orm import Session

from ..adapters.donorbox import normalize_donorbox
from ..adapters.donorbox_api import DonorboxAPIClient, DonorboxAPIError
from ..events import Applied, EventNotApplicable, PaymentValidationError, Skipped
from ..metrics import record_backfill_event
from ..settings import ProviderSettings
from .reconcile import notify_if_created, reconcile_event

logger = logging.getLogger(__name__)


@dataclass
class BackfillSummary:
    pages_fetched: int = 0
    succeeded: int = 0
    skipped: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)
    aborted: bool = False
    notification_errors: List[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "pages_fetched": self.pages_fetched,
            "succeeded": self.succeeded,
            "skipped": self.skipped,
            "failed": self.failed,
            "errors": list(self.errors),
            "aborted": self.aborted,
            "notification_errors": list(self.notification_errors),
        }


def _donation_label(donation: Any) -> str:
    if isinstance(donation, Mapping) and donation.get("id") is not None:
        return str(donation["id"])
    return "unknown"


def run_donorbox_backfill(
    date_from: date,
    *,
    client: DonorboxAPIClient,
    settings: ProviderSettings,
    session: Session,
    notifier=None,
) -> BackfillSummary:
    summary = BackfillSummary()
    try:
        for page in client.iter_pages(date_from):
            summary.pages_fetched += 1
            for donation in page.donations:
                _process_donation(donation, settings=settings, session=session, notifier=notifier, summary=summary)
    except DonorboxAPIError as exc:
        summary.aborted = True
        summary.errors.append(f"page {exc.page}: {exc}")
        logger.error("Donorbox backfill stopped", extra={"page": exc.page, "error": str(exc)})

    logger.info(
        "Donorbox backfill finished",
        extra={
            "date_from": date_from.isoformat(),
            "pages_fetched": summary.pages_fetched,
            "succeeded": summary.succeeded,
            "skipped": summary.skipped,
            "failed": summary.failed,
            "aborted": summary.aborted,
        },
    )
    return summary


def _process_donation(donation, *, settings, session, notifier, summary: BackfillSummary) -> None:
    label = _donation_label(donation)
    try:
        event = normalize_donorbox(donation, settings=settings)
    except EventNotApplicable:
        summary.skipped += 1
        record_backfill_event("skipped")
        return
    except PaymentValidationError as exc:
        summary.failed += 1
        summary.errors.append(f"{label}: {exc}")
        record_backfill_event("invalid")
        return

    outcome = reconcile_event(session, event, settings=settings)
    if isinstance(outcome, Applied):
        summary.succeeded += 1
        record_backfill_event("applied")
        outcome = notify_if_created(outcome, event, notifier)
        if outcome.notification_error:
            summary.notification_errors.append(f"{label}: {outcome.notification_error}")
    elif isinstance(outcome, Skipped):
        summary.skipped += 1
        record_backfill_event("skipped")
    else:
        summary.failed += 1
        summary.errors.append(f"{label}: {outcome.error}")
        record_backfill_event("failed")
