"""
Welcome notifications for first-time members.

A notification is a Discord invite link delivered in a provider-specific HTML
e-mail. Every failure is captured and reported back as a string; nothing here
ever unwinds a recorded payment.
"""

from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Any, Mapping, Protocol

import jinja2
import requests
from flask import Flask, render_template

from .events import NotificationError, PaymentEvent
from .metrics import record_notification

logger = logging.getLogger(__name__)

INVITE_OPTIONS = {"max_age": 604800, "max_uses": 1, "unique": True}
INVITE_URL = "https://discord.gg/{code}"


@dataclass(frozen=True)
class NotificationResult:
    sent: bool
    error: str | None = None


class InviteProvider(Protocol):
    def create_invite(self, reason: str) -> str: ...


class Mailer(Protocol):
    def send(self, to: str, subject: str, html: str) -> None: ...


class DiscordInviteProvider:
    """Creates single-use, week-long invites on one channel."""

    def __init__(
        self,
        *,
        session: requests.Session | None = None,
        base_url: str,
        bot_token: str | None,
        channel_id: str | None,
        timeout: float = 10.0,
    ) -> None:
        self.session = session or requests.Session()
        self.base_url = base_url.rstrip("/")
        self.bot_token = bot_token
        self.channel_id = channel_id
        self.timeout = timeout

    def create_invite(self, reason: str) -> str:
        if not self.bot_token or not self.channel_id:
            raise NotificationError("Discord invite channel is not configured")
        response = self.session.post(
            f"{self.base_url}/channels/{self.channel_id}/invites",
            json=INVITE_OPTIONS,
            headers={
                "Authorization": f"Bot {self.bot_token}",
                "X-Audit-Log-Reason": reason,
            },
            timeout=self.timeout,
        )
        response.raise_for_status()
        try:
            body = response.json()
        except ValueError as exc:
            raise NotificationError("Discord invite response is not JSON") from exc
        if not isinstance(body, Mapping):
            raise NotificationError(f"Discord invite response is a {type(body).__name__}, not an object")
        code = body.get("code")
        if not code:
            raise NotificationError("Discord invite response carried no code")
        return INVITE_URL.format(code=code)


class SMTPMailer:
    def __init__(
        self,
        *,
        server: str | None,
        port: int = 587,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        sender: str,
        reply_to: str | None = None,
        timeout: float = 15.0,
    ) -> None:
        self.server = server
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.sender = sender
        self.reply_to = reply_to
        self.timeout = timeout

    def send(self, to: str, subject: str, html: str) -> None:
        if not self.server:
            raise NotificationError("MAIL_SERVER is not configured")
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = self.sender
        message["To"] = to
        if self.reply_to:
            message["Reply-To"] = self.reply_to
        message.set_content("This message requires an HTML-capable mail client.")
        message.add_alternative(html, subtype="html")

        with smtplib.SMTP(self.server, self.port, timeout=self.timeout) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.username and self.password:
                smtp.login(self.username, self.password)
            smtp.send_message(message)


def invite_reason(event: PaymentEvent) -> str:
    return (
        f"New member automated invite ({event.source_provider.display_name} "
        f"transaction #{event.provider_transaction_id}, Email {event.payer_email})"
    )


class WelcomeNotifier:
    """Sends the welcome e-mail; returns a :class:`NotificationResult` and never raises."""

    def __init__(self, *, invite_provider: InviteProvider, mailer: Mailer, subject: str) -> None:
        self.invite_provider = invite_provider
        self.mailer = mailer
        self.subject = subject

    def render(self, event: PaymentEvent, invite_url: str) -> str:
        return render_template(
            f"emails/welcome_{event.source_provider.value}.html",
            first_name=event.payer_first_name or "there",
            full_name=event.payer_name,
            amount=event.amount,
            transaction_id=event.provider_transaction_id,
            reference_url=event.reference_url,
            metadata=dict(event.metadata),
            invite_url=invite_url,
        )

    def send_welcome(self, member_id: int, event: PaymentEvent) -> NotificationResult:
        log_extra: dict[str, Any] = {
            "member_id": member_id,
            "payment_provider": event.source_provider.value,
            "provider_transaction_id": event.provider_transaction_id,
        }
        try:
            invite_url = self.invite_provider.create_invite(invite_reason(event))
            html = self.render(event, invite_url)
            self.mailer.send(event.payer_email, self.subject, html)
        except (
            requests.RequestException,
            smtplib.SMTPException,
            OSError,
            jinja2.TemplateError,
            NotificationError,
        ) as exc:
            logger.warning("Welcome notification failed: %s", exc, extra={**log_extra, "error": str(exc)})
            record_notification("failed")
            return NotificationResult(sent=False, error=f"{type(exc).__name__}: {exc}")

        logger.info("Welcome notification sent", extra=log_extra)
        record_notification("sent")
        return NotificationResult(sent=True)


def build_notifier(app: Flask) -> WelcomeNotifier:
    config = app.config
    invite_provider = DiscordInviteProvider(
        base_url=config.get("DISCORD_API_URL", "https://discord.com/api/v10"),
        bot_token=config.get("DISCORD_BOT_TOKEN"),
        channel_id=config.get("DISCORD_INVITE_CHANNEL_ID"),
        timeout=config.get("PAYMENTS_HTTP_TIMEOUT_SECONDS", 10.0),
    )
    mailer = SMTPMailer(
        server=config.get("MAIL_SERVER"),
        port=int(config.get("MAIL_PORT", 587)),
        username=config.get("MAIL_USERNAME"),
        password=config.get("MAIL_PASSWORD"),
        use_tls=bool(config.get("MAIL_USE_TLS", True)),
        sender=config.get("MAIL_FROM", "noreply@example.com"),
        reply_to=config.get("MAIL_REPLY_TO"),
        timeout=config.get("MAIL_TIMEOUT_SECONDS", 15.0),
    )
    return WelcomeNotifier(
        invite_provider=invite_provider,
        mailer=mailer,
        subject=config.get("WELCOME_EMAIL_SUBJECT", "Welcome!"),
    )
