"""
Payment ingestion package.

Mounts the webhook blueprint and the ``flask payments`` CLI group, and keeps
per-app state (provider settings, welcome notifier) in
``app.extensions['payments']``.
"""

from __future__ import annotations

from flask import Flask

from .cli import payments_cli
from .events import (
    Applied,
    EventNotApplicable,
    Failed,
    NotificationError,
    PaymentEvent,
    PaymentPipelineError,
    PaymentValidationError,
    SignatureVerificationError,
    Skipped,
    SourceProvider,
)
from .adapters.donorbox_api import DonorboxAPIClient
from .adapters.webconnex_api import WebconnexAPIClient
from .notifications import build_notifier
from .settings import ProviderSettings
from .views import payment_webhooks_blueprint

PAYMENTS_EXTENSION_KEY = "payments"

__all__ = [
    "init_payments",
    "get_provider_settings",
    "get_notifier",
    "get_donorbox_client",
    "get_webconnex_client",
    "PAYMENTS_EXTENSION_KEY",
    "ProviderSettings",
    "PaymentEvent",
    "SourceProvider",
    "Applied",
    "Skipped",
    "Failed",
    "PaymentPipelineError",
    "SignatureVerificationError",
    "EventNotApplicable",
    "PaymentValidationError",
    "NotificationError",
]


def _ensure_extension_state(app: Flask) -> dict:
    return app.extensions.setdefault(
        PAYMENTS_EXTENSION_KEY,
        {
            "settings": None,
            "notifier": None,
            "donorbox_client": None,
            "webconnex_client": None,
        },
    )


def get_provider_settings(app: Flask) -> ProviderSettings:
    """Settings are rebuilt when absent so tests may adjust ``app.config`` between requests."""
    state = _ensure_extension_state(app)
    settings = state.get("settings")
    if settings is None:
        settings = ProviderSettings.from_config(app.config)
    return settings


def get_notifier(app: Flask):
    """
    Return the welcome notifier for ``app``.

    An explicitly registered notifier always wins; otherwise one is built from
    config when ``ENABLE_WELCOME_EMAILS`` is on, and ``None`` is returned when
    welcome e-mails are disabled.
    """
    state = _ensure_extension_state(app)
    notifier = state.get("notifier")
    if notifier is not None:
        return notifier
    if not app.config.get("ENABLE_WELCOME_EMAILS", False):
        return None
    notifier = build_notifier(app)
    state["notifier"] = notifier
    return notifier


def get_donorbox_client(app: Flask) -> DonorboxAPIClient:
    state = _ensure_extension_state(app)
    client = state.get("donorbox_client")
    if client is not None:
        return client
    return DonorboxAPIClient.from_settings(get_provider_settings(app))


def get_webconnex_client(app: Flask) -> WebconnexAPIClient:
    state = _ensure_extension_state(app)
    client = state.get("webconnex_client")
    if client is not None:
        return client
    return WebconnexAPIClient.from_settings(get_provider_settings(app))


def init_payments(app: Flask) -> None:
    """Register webhook routes and CLI commands on ``app``."""
    _ensure_extension_state(app)
    if "payment_webhooks" not in app.blueprints:
        app.register_blueprint(payment_webhooks_blueprint)

    # Avoid duplicate registrations when running tests
    if payments_cli.name in app.cli.commands:
        app.cli.commands.pop(payments_cli.name)
    app.cli.add_command(payments_cli)

    app.logger.info(
        "Payment ingestion initialised",
        extra={
            "webconnex_forms": list(app.config.get("WEBCONNEX_FORM_IDS") or ()),
            "donorbox_campaigns": list(app.config.get("DONORBOX_CAMPAIGN_IDS") or ()),
            "deduplicate_transactions": bool(app.config.get("PAYMENTS_DEDUPLICATE_TRANSACTIONS", False)),
        },
    )
