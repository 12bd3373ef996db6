"""Cached membership activity window (``consecutive_since``/``consecutive_until``)."""

from __future__ import annotations

import calendar
from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from membership_app.models import Member, Payment


def add_months(start: date, months: int) -> date:
    """Shift ``start`` by ``months``, clamping the day to the target month's length."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def compute_activity_window(payments) -> tuple[date | None, date | None]:
    """
    Walk ``(effective_on, duration_months)`` pairs oldest first.

    A payment landing on or before the current end stacks its credit onto
    that end; a later payment starts a new run.
    """
    since: date | None = None
    until: date | None = None
    for effective_on, duration_months in sorted(payments, key=lambda item: item[0]):
        months = duration_months or 1
        if until is not None and effective_on <= until:
            until = add_months(until, months)
        else:
            since = effective_on
            until = add_months(effective_on, months)
    return since, until


def refresh_activity_window(session: Session, member_id: int) -> Member:
    member = session.get(Member, member_id)
    if member is None:
        raise LookupError(f"member {member_id} does not exist")
    rows = session.execute(
        select(Payment.effective_on, Payment.duration_months).where(Payment.member_id == member_id)
    ).all()
    member.consecutive_since, member.consecutive_until = compute_activity_window(rows)
    session.flush()
    return member
