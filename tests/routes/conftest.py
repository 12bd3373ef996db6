"""Shared fixtures for route tests"""

import json

import pytest

from membership_app.payments import PAYMENTS_EXTENSION_KEY
from membership_app.payments.notifications import NotificationResult
from membership_app.payments.signatures import compute_signature


class FakeNotifier:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    def send_welcome(self, member_id, event):
        self.calls.append((member_id, event))
        if self.error:
            return NotificationResult(sent=False, error=self.error)
        return NotificationResult(sent=True)


@pytest.fixture
def fake_notifier(app):
    notifier = FakeNotifier()
    app.extensions[PAYMENTS_EXTENSION_KEY]["notifier"] = notifier
    return notifier


@pytest.fixture
def failing_notifier(app):
    notifier = FakeNotifier(error="SMTPAuthenticationError: bad credentials")
    app.extensions[PAYMENTS_EXTENSION_KEY]["notifier"] = notifier
    return notifier


@pytest.fixture
def post_webconnex(client, app):
    """POST a signed Webconnex webhook; ``secret_key`` picks the config secret"""

    def post(path, payload, *, secret_key="WEBCONNEX_NEW_MEMBER_HMAC", signature=None):
        body = json.dumps(payload).encode()
        if signature is None:
            signature = compute_signature(app.config[secret_key], body)
        headers = {"X-Webconnex-Signature": signature} if signature else {}
        return client.post(path, data=body, headers=headers, content_type="application/json")

    return post


@pytest.fixture
def post_donorbox(client, app):
    """POST a signed Donorbox webhook body (an array of one donation)"""

    def post(body_obj, *, secret=None, timestamp="1712052672"):
        body = json.dumps(body_obj).encode()
        signature = compute_signature(secret or app.config["DONORBOX_HMAC"], timestamp.encode() + b"." + body)
        return client.post(
            "/.donorbox/new-donation",
            data=body,
            headers={"Donorbox-Signature": f"{timestamp},{signature}"},
            content_type="application/json",
        )

    return post
