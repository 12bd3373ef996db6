"""
GivingFuel CSV import driver.

Exports list newest transactions first. Rows are replayed in reverse file
order so the earliest payment is the one that creates the member. The whole
file is one transaction: any malformed row rolls everything back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import IO

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..adapters.givingfuel_csv import CSVAdapterError, GivingFuelCSVAdapter
from ..events import PaymentValidationError, SourceProvider
from ..metrics import record_csv_import
from ..settings import ProviderSettings
from .activity import refresh_activity_window
from .ledger import find_duplicate_payment, record_payment
from .resolver import BulkMemberResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CSVImportSummary:
    members_added: int
    payments_added: int
    rows_skipped: int

    @property
    def message(self) -> str:
        return f"Added {self.members_added} members and {self.payments_added} payments successfully"


def import_givingfuel_csv(file_obj: IO[str], *, session: Session, settings: ProviderSettings) -> CSVImportSummary:
    """
    Raises:
        CSVAdapterError: header or row could not be parsed (nothing committed).
        PaymentValidationError: a completed charge lacks required data.
        SQLAlchemyError: the database rejected the batch.
    """
    try:
        # Parse every row before touching the database.
        rows = list(GivingFuelCSVAdapter(file_obj).iter_rows())

        resolver = BulkMemberResolver(session)
        payments_added = 0
        rows_skipped = 0
        touched: set[int] = set()

        for row in reversed(rows):
            if not row.is_completed_charge:
                rows_skipped += 1
                continue
            event = row.to_event()
            if settings.deduplicate_transactions and find_duplicate_payment(
                session, SourceProvider.GIVINGFUEL_CSV.value, event.provider_transaction_id
            ):
                rows_skipped += 1
                continue
            resolution = resolver.resolve(
                email=event.payer_email,
                first_name=event.payer_first_name,
                last_name=event.payer_last_name,
            )
            record_payment(session, resolution.member_id, event)
            touched.add(resolution.member_id)
            payments_added += 1

        for member_id in sorted(touched):
            refresh_activity_window(session, member_id)
        session.commit()
    except (CSVAdapterError, PaymentValidationError, SQLAlchemyError) as exc:
        session.rollback()
        record_csv_import("failure")
        logger.warning("GivingFuel CSV import rolled back: %s", exc)
        raise

    summary = CSVImportSummary(
        members_added=resolver.members_added,
        payments_added=payments_added,
        rows_skipped=rows_skipped,
    )
    record_csv_import("success")
    logger.info(
        "GivingFuel CSV import committed",
        extra={
            "members_added": summary.members_added,
            "payments_added": summary.payments_added,
            "rows_skipped": summary.rows_skipped,
        },
    )
    return summary
