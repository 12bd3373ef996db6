"""
Idempotent find-or-create of members keyed by lower-cased e-mail.

Both resolvers run inside the caller's transaction and never commit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from membership_app.models import Member

logger = logging.getLogger(__name__)

_CONFLICT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


@dataclass(frozen=True)
class MemberResolution:
    member_id: int
    created: bool


def _existing_member_id(session: Session, email: str) -> int | None:
    return session.execute(select(Member.id).where(Member.email == email)).scalar_one_or_none()


def resolve_member(session: Session, *, email: str, first_name: str, last_name: str) -> MemberResolution:
    """
    Insert the member if absent, else read the existing row.

    Uses a single ``INSERT ... ON CONFLICT (email) DO NOTHING RETURNING id`` so
    that two concurrent deliveries for the same new address cannot both
    create a member; the loser reads the winner's row.
    """
    email = email.strip().lower()
    values = {"email": email, "first_name": first_name or "", "last_name": last_name or ""}
    dialect = session.get_bind().dialect.name
    insert_factory = _CONFLICT_INSERTS.get(dialect)

    if insert_factory is None:
        existing = _existing_member_id(session, email)
        if existing is not None:
            return MemberResolution(member_id=existing, created=False)
        member = Member(**values)
        session.add(member)
        session.flush()
        return MemberResolution(member_id=member.id, created=True)

    stmt = (
        insert_factory(Member)
        .values(**values)
        .on_conflict_do_nothing(index_elements=["email"])
        .returning(Member.id)
    )
    inserted_id = session.execute(stmt).scalar_one_or_none()
    if inserted_id is not None:
        logger.info("Created member", extra={"member_id": inserted_id})
        return MemberResolution(member_id=inserted_id, created=True)

    existing = _existing_member_id(session, email)
    if existing is None:
        raise LookupError(f"member {email} conflicted on insert but could not be read back")
    return MemberResolution(member_id=existing, created=False)


class BulkMemberResolver:
    """
    Resolver for one long-running batch.

    Loads every known ``email -> id`` once, then records each new member as
    soon as it is flushed so later rows in the same batch reuse it.
    """

    def __init__(self, session: Session) -> None:
        self.session = session
        self.members_added = 0
        self._known: dict[str, int] = {
            email.lower(): member_id for member_id, email in session.execute(select(Member.id, Member.email))
        }

    def __contains__(self, email: str) -> bool:
        return email.strip().lower() in self._known

    def resolve(self, *, email: str, first_name: str, last_name: str) -> MemberResolution:
        email = email.strip().lower()
        known = self._known.get(email)
        if known is not None:
            return MemberResolution(member_id=known, created=False)

        member = Member(email=email, first_name=first_name or "", last_name=last_name or "")
        self.session.add(member)
        self.session.flush()
        self._known[email] = member.id
        self.members_added += 1
        return MemberResolution(member_id=member.id, created=True)
