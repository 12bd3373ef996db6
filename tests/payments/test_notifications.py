import smtplib
from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
import requests

from membership_app.payments import PAYMENTS_EXTENSION_KEY, get_notifier
from membership_app.payments.events import NotificationError, PaymentEvent, SourceProvider
from membership_app.payments.notifications import (
    DiscordInviteProvider,
    SMTPMailer,
    WelcomeNotifier,
    invite_reason,
)


class FakeResponse:
    def __init__(self, *, status_code=200, json_data=None):
        self.status_code = status_code
        self._json_data = json_data or {}

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"status={self.status_code}")

    def json(self):
        return self._json_data


class FakeSession:
    def __init__(self, response):
        self.response = response
        self.post_calls = []

    def post(self, url, **kwargs):
        self.post_calls.append((url, kwargs))
        return self.response


class FakeInviteProvider:
    def __init__(self, url="https://discord.gg/abc123", error=None):
        self.url = url
        self.error = error
        self.reasons = []

    def create_invite(self, reason):
        self.reasons.append(reason)
        if self.error:
            raise self.error
        return self.url


class FakeMailer:
    def __init__(self, error=None):
        self.error = error
        self.sent = []

    def send(self, to, subject, html):
        if self.error:
            raise self.error
        self.sent.append((to, subject, html))


def _event(provider=SourceProvider.DONORBOX, **overrides):
    values = dict(
        source_provider=provider,
        provider_transaction_id="5001",
        payer_email="donor@example.org",
        payer_first_name="Dana",
        payer_last_name="<Donor>",
        amount=Decimal("18.92"),
        payment_method="stripe",
        effective_date=date(2024, 4, 2),
        reference_url="https://donorbox.org/org_admin/donations/5001",
        metadata={"comment": "<b>hi</b>"},
    )
    values.update(overrides)
    return PaymentEvent(**values)


def test_discord_invite_request_shape():
    session = FakeSession(FakeResponse(json_data={"code": "xyz789"}))
    provider = DiscordInviteProvider(
        session=session, base_url="https://discord.test/api/v10/", bot_token="bot-token", channel_id="42", timeout=2.0
    )

    url = provider.create_invite("New member automated invite")

    assert url == "https://discord.gg/xyz789"
    call_url, kwargs = session.post_calls[0]
    assert call_url == "https://discord.test/api/v10/channels/42/invites"
    assert kwargs["json"] == {"max_age": 604800, "max_uses": 1, "unique": True}
    assert kwargs["headers"]["X-Audit-Log-Reason"] == "New member automated invite"
    assert kwargs["headers"]["Authorization"] == "Bot bot-token"
    assert kwargs["timeout"] == 2.0


def test_discord_invite_requires_configuration():
    provider = DiscordInviteProvider(session=FakeSession(None), base_url="https://x", bot_token=None, channel_id="1")
    with pytest.raises(NotificationError):
        provider.create_invite("reason")


def test_invite_reason_names_provider_transaction_and_email():
    assert invite_reason(_event()) == (
        "New member automated invite (Donorbox transaction #5001, Email donor@example.org)"
    )
    assert "Webconnex transaction #5001" in invite_reason(_event(SourceProvider.WEBCONNEX))


@pytest.mark.parametrize("provider", [SourceProvider.DONORBOX, SourceProvider.WEBCONNEX])
def test_send_welcome_renders_provider_template_and_sends(app, provider):
    invites = FakeInviteProvider()
    mailer = FakeMailer()
    notifier = WelcomeNotifier(invite_provider=invites, mailer=mailer, subject="Welcome!")

    result = notifier.send_welcome(7, _event(provider))

    assert result.sent is True and result.error is None
    to, subject, html = mailer.sent[0]
    assert to == "donor@example.org"
    assert subject == "Welcome!"
    assert "https://discord.gg/abc123" in html
    assert "18.92" in html
    assert "Dana" in html


def test_template_values_are_autoescaped(app):
    mailer = FakeMailer()
    WelcomeNotifier(invite_provider=FakeInviteProvider(), mailer=mailer, subject="s").send_welcome(1, _event())
    html = mailer.sent[0][2]
    assert "<b>hi</b>" not in html
    assert "&lt;b&gt;hi&lt;/b&gt;" in html


@pytest.mark.parametrize(
    "invites, mailer",
    [
        (FakeInviteProvider(error=requests.Timeout("discord timed out")), FakeMailer()),
        (FakeInviteProvider(error=NotificationError("not configured")), FakeMailer()),
        (FakeInviteProvider(), FakeMailer(error=smtplib.SMTPAuthenticationError(535, b"bad credentials"))),
        (FakeInviteProvider(), FakeMailer(error=ConnectionRefusedError("smtp down"))),
    ],
)
def test_send_welcome_captures_collaborator_failures(app, invites, mailer):
    notifier = WelcomeNotifier(invite_provider=invites, mailer=mailer, subject="s")
    result = notifier.send_welcome(1, _event())
    assert result.sent is False
    assert result.error


@pytest.mark.parametrize("body", [["unexpected"], "abc123", {"message": "Missing Access"}])
def test_malformed_discord_response_is_reported_not_raised(app, body):
    invites = DiscordInviteProvider(
        session=FakeSession(FakeResponse(json_data=body)),
        base_url="https://discord.test/api/v10",
        bot_token="token",
        channel_id="42",
        timeout=2.0,
    )
    mailer = FakeMailer()

    result = WelcomeNotifier(invite_provider=invites, mailer=mailer, subject="s").send_welcome(1, _event())

    assert result.sent is False
    assert result.error.startswith("NotificationError: ")
    assert mailer.sent == []


def test_smtp_mailer_uses_starttls_and_login():
    mailer = SMTPMailer(
        server="smtp.test",
        port=2525,
        username="user",
        password="pass",
        sender="club@psychedelicclub.org",
        reply_to="board@psychedelicclub.org",
        timeout=4.0,
    )
    with patch("membership_app.payments.notifications.smtplib.SMTP") as smtp_cls:
        smtp = MagicMock()
        smtp_cls.return_value.__enter__.return_value = smtp
        mailer.send("donor@example.org", "Welcome", "<p>Hi</p>")

    smtp_cls.assert_called_once_with("smtp.test", 2525, timeout=4.0)
    smtp.starttls.assert_called_once()
    smtp.login.assert_called_once_with("user", "pass")
    message = smtp.send_message.call_args[0][0]
    assert message["To"] == "donor@example.org"
    assert message["Reply-To"] == "board@psychedelicclub.org"


def test_smtp_mailer_without_server_raises_notification_error():
    with pytest.raises(NotificationError):
        SMTPMailer(server=None, sender="a@b.org").send("x@example.org", "s", "<p></p>")


def test_get_notifier_prefers_registered_then_respects_feature_flag(app, monkeypatch):
    assert get_notifier(app) is None

    monkeypatch.setitem(app.config, "ENABLE_WELCOME_EMAILS", True)
    built = get_notifier(app)
    assert isinstance(built, WelcomeNotifier)
    assert get_notifier(app) is built

    registered = object()
    app.extensions[PAYMENTS_EXTENSION_KEY]["notifier"] = registered
    assert get_notifier(app) is registered


def test_webconnex_welcome_links_payment_reference(app):
    mailer = FakeMailer()
    event = _event(
        SourceProvider.WEBCONNEX,
        provider_transaction_id="900001",
        reference_url="https://members.example.org/.webconnex/redirect/transaction/900001",
        metadata={},
    )

    WelcomeNotifier(invite_provider=FakeInviteProvider(), mailer=mailer, subject="s").send_welcome(1, event)

    assert 'href="https://members.example.org/.webconnex/redirect/transaction/900001"' in mailer.sent[0][2]
