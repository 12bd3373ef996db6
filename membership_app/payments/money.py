"""Fixed-point amount parsing shared by every normalizer."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from .events import PaymentValidationError

CENT = Decimal("0.01")


def parse_amount(value: object, *, field_name: str = "amount") -> Decimal:
    """
    Convert a provider amount into a two-place ``Decimal``.

    Accepts ``Decimal``, ``int`` or text such as ``"$1,234.50"``. Values are
    rounded half-up to the cent, so ``"19.999"`` becomes ``Decimal("20.00")``.
    Floats are refused outright; callers parse JSON with ``parse_float=Decimal``.
    """
    if value is None or isinstance(value, bool):
        raise PaymentValidationError(f"{field_name} is required")
    if isinstance(value, float):
        raise PaymentValidationError(f"{field_name} must not be a binary float")

    if isinstance(value, Decimal):
        candidate = value
    elif isinstance(value, int):
        candidate = Decimal(value)
    elif isinstance(value, str):
        text = value.strip().replace("$", "").replace(",", "")
        if not text:
            raise PaymentValidationError(f"{field_name} is required")
        try:
            candidate = Decimal(text)
        except InvalidOperation as exc:
            raise PaymentValidationError(f"{field_name} {value!r} is not a number") from exc
    else:
        raise PaymentValidationError(f"{field_name} has unsupported type {type(value).__name__}")

    if not candidate.is_finite():
        raise PaymentValidationError(f"{field_name} must be finite")
    if candidate < 0:
        raise PaymentValidationError(f"{field_name} must not be negative")
    return candidate.quantize(CENT, rounding=ROUND_HALF_UP)
