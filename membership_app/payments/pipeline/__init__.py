"""Reconciliation drivers and the resolve/record steps they compose."""

from .activity import add_months, compute_activity_window, refresh_activity_window
from .backfill import BackfillSummary, run_donorbox_backfill
from .csv_import import CSVImportSummary, import_givingfuel_csv
from .ledger import find_duplicate_payment, record_manual_payment, record_payment
from .reconcile import notify_if_created, reconcile_event
from .resolver import BulkMemberResolver, MemberResolution, resolve_member

__all__ = [
    "add_months",
    "compute_activity_window",
    "refresh_activity_window",
    "BackfillSummary",
    "run_donorbox_backfill",
    "CSVImportSummary",
    "import_givingfuel_csv",
    "find_duplicate_payment",
    "record_manual_payment",
    "record_payment",
    "notify_if_created",
    "reconcile_event",
    "BulkMemberResolver",
    "MemberResolution",
    "resolve_member",
]
