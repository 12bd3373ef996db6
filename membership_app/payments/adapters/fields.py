"""Field coercion helpers shared by the provider normalizers."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Mapping

from ..events import PaymentValidationError


def require_mapping(value: Any, name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise PaymentValidationError(f"{name} must be an object")
    return value


def normalize_email(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise PaymentValidationError("payer email is required")
    email = value.strip().lower()
    if "@" not in email:
        raise PaymentValidationError(f"payer email {value!r} is not an address")
    return email


def clean_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def optional_text(value: Any) -> str | None:
    text = clean_text(value)
    return text or None


def transaction_id_text(value: Any, *, required: bool = True) -> str | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise PaymentValidationError("transaction id is required")
        return None
    if isinstance(value, bool):
        raise PaymentValidationError("transaction id must be a string or integer")
    return str(value).strip()


def parse_iso_date(value: Any, name: str) -> date:
    """Calendar date of an ISO-8601 date or timestamp (``Z`` suffix accepted)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise PaymentValidationError(f"{name} is required")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10])
    except ValueError as exc:
        raise PaymentValidationError(f"{name} {value!r} is not an ISO-8601 date") from exc
