"""
HMAC-SHA256 verification of inbound webhook bodies.

Verifiers are pure functions of ``(secret, headers, body)`` and run on the raw
request body before it is parsed.
"""

from __future__ import annotations

import binascii
import hashlib
import hmac
from typing import Mapping

from .events import SignatureVerificationError

WEBCONNEX_SIGNATURE_HEADER = "X-Webconnex-Signature"
DONORBOX_SIGNATURE_HEADER = "Donorbox-Signature"


def compute_signature(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def _header(headers: Mapping[str, str], name: str) -> str:
    value = headers.get(name)
    if value is None:
        # Werkzeug headers are case-insensitive; plain dicts are not.
        lowered = name.lower()
        value = next((v for k, v in headers.items() if k.lower() == lowered), None)
    if not value or not value.strip():
        raise SignatureVerificationError(f"Missing {name} header")
    return value.strip()


def _compare(secret: str | None, message: bytes, signature_hex: str) -> None:
    if not secret:
        raise SignatureVerificationError("Webhook secret is not configured")
    try:
        provided = binascii.unhexlify(signature_hex)
    except (binascii.Error, ValueError) as exc:
        raise SignatureVerificationError("Signature is not valid hex") from exc
    expected = hmac.new(secret.encode("utf-8"), message, hashlib.sha256).digest()
    if not hmac.compare_digest(expected, provided):
        raise SignatureVerificationError("Signature mismatch")


def verify_webconnex_signature(secret: str | None, headers: Mapping[str, str], body: bytes) -> None:
    """The header carries the bare hex HMAC of the body."""
    _compare(secret, body, _header(headers, WEBCONNEX_SIGNATURE_HEADER))


def verify_donorbox_signature(secret: str | None, headers: Mapping[str, str], body: bytes) -> None:
    """The header is ``"<timestamp>,<hex>"``; the signed message is ``timestamp + "." + body``."""
    raw = _header(headers, DONORBOX_SIGNATURE_HEADER)
    timestamp, sep, signature_hex = raw.partition(",")
    timestamp = timestamp.strip()
    signature_hex = signature_hex.strip()
    if not sep or not timestamp or not signature_hex:
        raise SignatureVerificationError("Malformed Donorbox-Signature header")
    _compare(secret, timestamp.encode("utf-8") + b"." + body, signature_hex)


def is_valid_webconnex_signature(secret, headers, body) -> bool:
    try:
        verify_webconnex_signature(secret, headers, body)
    except SignatureVerificationError:
        return False
    return True


def is_valid_donorbox_signature(secret, headers, body) -> bool:
    try:
        verify_donorbox_signature(secret, headers, body)
    except SignatureVerificationError:
        return False
    return True
