import hashlib
import hmac

import pytest

from membership_app.payments.events import SignatureVerificationError
from membership_app.payments.signatures import (
    compute_signature,
    is_valid_donorbox_signature,
    is_valid_webconnex_signature,
    verify_donorbox_signature,
    verify_webconnex_signature,
)

SECRET = "shh-its-a-secret"
BODY = b'{"data": {"transactionId": 1}}'


def test_compute_signature_is_lowercase_hex_hmac_sha256():
    expected = hmac.new(SECRET.encode(), BODY, hashlib.sha256).hexdigest()
    assert compute_signature(SECRET, BODY) == expected
    assert compute_signature(SECRET, BODY) == expected.lower()


def test_webconnex_signature_accepts_bare_hex_of_body():
    headers = {"X-Webconnex-Signature": compute_signature(SECRET, BODY)}
    verify_webconnex_signature(SECRET, headers, BODY)
    assert is_valid_webconnex_signature(SECRET, headers, BODY)


def test_webconnex_header_lookup_is_case_insensitive_for_plain_dicts():
    headers = {"x-webconnex-signature": compute_signature(SECRET, BODY)}
    assert is_valid_webconnex_signature(SECRET, headers, BODY)


def test_webconnex_uppercase_hex_still_verifies():
    headers = {"X-Webconnex-Signature": compute_signature(SECRET, BODY).upper()}
    assert is_valid_webconnex_signature(SECRET, headers, BODY)


@pytest.mark.parametrize(
    "headers",
    [
        {},
        {"X-Webconnex-Signature": ""},
        {"X-Webconnex-Signature": "not-hex"},
        {"X-Webconnex-Signature": compute_signature("other-secret", BODY)},
    ],
)
def test_webconnex_rejects_missing_malformed_or_wrong_signature(headers):
    with pytest.raises(SignatureVerificationError):
        verify_webconnex_signature(SECRET, headers, BODY)


def test_webconnex_rejects_tampered_body():
    headers = {"X-Webconnex-Signature": compute_signature(SECRET, BODY)}
    assert not is_valid_webconnex_signature(SECRET, headers, BODY + b" ")


def test_missing_secret_never_verifies():
    headers = {"X-Webconnex-Signature": compute_signature("", BODY)}
    with pytest.raises(SignatureVerificationError, match="not configured"):
        verify_webconnex_signature(None, headers, BODY)


def test_donorbox_signature_signs_timestamp_dot_body():
    timestamp = "1712052672"
    signature = compute_signature(SECRET, timestamp.encode() + b"." + BODY)
    headers = {"Donorbox-Signature": f"{timestamp},{signature}"}
    verify_donorbox_signature(SECRET, headers, BODY)
    assert is_valid_donorbox_signature(SECRET, headers, BODY)


def test_donorbox_signature_over_body_alone_is_rejected():
    timestamp = "1712052672"
    headers = {"Donorbox-Signature": f"{timestamp},{compute_signature(SECRET, BODY)}"}
    assert not is_valid_donorbox_signature(SECRET, headers, BODY)


@pytest.mark.parametrize(
    "header_value",
    ["", "1712052672", ",abcdef", "1712052672,", "1712052672,zz-not-hex"],
)
def test_donorbox_rejects_malformed_header(header_value):
    with pytest.raises(SignatureVerificationError):
        verify_donorbox_signature(SECRET, {"Donorbox-Signature": header_value}, BODY)
