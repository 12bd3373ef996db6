"""
Inbound payment webhooks.

Each request is authenticated on its raw body, normalized, reconciled in one
transaction and, for first-time members, followed by a welcome notification
once the payment is committed.
"""

from __future__ import annotations

import json
from decimal import Decimal
from http import HTTPStatus
from typing import Callable

from flask import Blueprint, current_app, jsonify, redirect, request

from membership_app.models import db

from .adapters.donorbox import normalize_donorbox, unwrap_webhook_body
from .adapters.webconnex import normalize_webconnex
from .adapters.webconnex_api import WebconnexAPIError, order_report_url
from .events import (
    Applied,
    EventNotApplicable,
    Failed,
    PaymentEvent,
    PaymentValidationError,
    SignatureVerificationError,
    SourceProvider,
)
from .metrics import record_webhook_event
from .pipeline.reconcile import notify_if_created, reconcile_event
from .settings import ProviderSettings
from .signatures import verify_donorbox_signature, verify_webconnex_signature

payment_webhooks_blueprint = Blueprint("payment_webhooks", __name__)


def _json_error(message: str, status: HTTPStatus):
    response = jsonify({"error": message})
    response.status_code = status
    return response


def _settings() -> ProviderSettings:
    from . import get_provider_settings

    return get_provider_settings(current_app)


def _notifier():
    from . import get_notifier

    return get_notifier(current_app)


def _handle_webhook(
    *,
    provider: SourceProvider,
    settings: ProviderSettings,
    secret: str | None,
    verify: Callable,
    normalize: Callable[[object, ProviderSettings], PaymentEvent],
    notify: bool,
):
    body = request.get_data(cache=False)
    log_extra = {"payment_provider": provider.value, "endpoint": request.path}

    try:
        verify(secret, request.headers, body)
    except SignatureVerificationError as exc:
        current_app.logger.warning("Webhook signature rejected: %s", exc, extra=log_extra)
        record_webhook_event(provider.value, "rejected")
        return _json_error("Unauthorized", HTTPStatus.UNAUTHORIZED)

    try:
        payload = json.loads(body, parse_float=Decimal)
        event = normalize(payload, settings)
    except EventNotApplicable as exc:
        current_app.logger.info("Webhook event not applicable: %s", exc.reason, extra=log_extra)
        record_webhook_event(provider.value, "skipped")
        return "", HTTPStatus.NO_CONTENT
    except (ValueError, PaymentValidationError) as exc:
        # json.JSONDecodeError and UnicodeDecodeError are ValueErrors
        current_app.logger.warning("Webhook payload invalid: %s", exc, extra=log_extra)
        record_webhook_event(provider.value, "invalid")
        return _json_error(f"Invalid payload: {exc}", HTTPStatus.BAD_REQUEST)

    outcome = reconcile_event(db.session, event, settings=settings)
    if isinstance(outcome, Failed):
        record_webhook_event(provider.value, "failed")
        return _json_error(outcome.error, HTTPStatus.INTERNAL_SERVER_ERROR)
    if not isinstance(outcome, Applied):
        current_app.logger.info("Webhook event skipped: %s", outcome.reason, extra=log_extra)
        record_webhook_event(provider.value, "skipped")
        return "", HTTPStatus.NO_CONTENT

    record_webhook_event(provider.value, "applied")
    if notify:
        outcome = notify_if_created(outcome, event, _notifier())

    response_body = {
        "created_member_id": outcome.member_id if outcome.created_member else None,
        "member_id": outcome.member_id,
        "transaction_id": outcome.payment_id,
        "provider_transaction_id": event.provider_transaction_id,
    }
    if outcome.notification_error:
        response_body["notification_error"] = outcome.notification_error
    current_app.logger.info(
        "Webhook payment recorded",
        extra={**log_extra, "member_id": outcome.member_id, "payment_id": outcome.payment_id},
    )
    return jsonify(response_body), HTTPStatus.OK


@payment_webhooks_blueprint.post("/.webconnex/new-member")
def webconnex_new_member():
    settings = _settings()
    return _handle_webhook(
        provider=SourceProvider.WEBCONNEX,
        settings=settings,
        secret=settings.webconnex_new_member_secret,
        verify=verify_webconnex_signature,
        normalize=lambda payload, s: normalize_webconnex(payload, settings=s),
        notify=True,
    )


@payment_webhooks_blueprint.post("/.webconnex/payment-success")
def webconnex_payment_success():
    """Recurring charges for existing subscriptions; never sends a welcome."""
    settings = _settings()
    return _handle_webhook(
        provider=SourceProvider.WEBCONNEX,
        settings=settings,
        secret=settings.webconnex_payment_success_secret,
        verify=verify_webconnex_signature,
        normalize=lambda payload, s: normalize_webconnex(payload, settings=s),
        notify=False,
    )


@payment_webhooks_blueprint.post("/.donorbox/new-donation")
def donorbox_new_donation():
    settings = _settings()
    return _handle_webhook(
        provider=SourceProvider.DONORBOX,
        settings=settings,
        secret=settings.donorbox_secret,
        verify=verify_donorbox_signature,
        normalize=lambda payload, s: normalize_donorbox(unwrap_webhook_body(payload), settings=s),
        notify=True,
    )


@payment_webhooks_blueprint.get("/.webconnex/redirect/transaction/<int:txid>")
def webconnex_transaction_redirect(txid):
    """Send the browser to the GivingFuel order report holding ``txid``."""
    from . import get_webconnex_client

    client = get_webconnex_client(current_app)
    if not client.is_configured:
        return _json_error("Webconnex API key is not configured", HTTPStatus.SERVICE_UNAVAILABLE)
    try:
        order_id = client.lookup_order_id(txid)
    except WebconnexAPIError as exc:
        current_app.logger.warning(
            "Webconnex order lookup failed: %s",
            exc,
            extra={"payment_provider": SourceProvider.WEBCONNEX.value, "provider_transaction_id": txid},
        )
        return _json_error(f"Webconnex lookup failed: {exc}", HTTPStatus.BAD_GATEWAY)
    return redirect(order_report_url(order_id, txid), code=HTTPStatus.PERMANENT_REDIRECT)
