"""
Operator routes for bulk payment imports and manual payment entry.
"""

from __future__ import annotations

import io
import json
from datetime import date
from decimal import Decimal
from http import HTTPStatus

from flask import Blueprint, current_app, jsonify, make_response, request
from flask_login import current_user, login_required
from sqlalchemy.exc import SQLAlchemyError

from membership_app.forms import GivingFuelImportForm
from membership_app.models import AdminLog, Member, db
from membership_app.payments import get_donorbox_client, get_notifier, get_provider_settings
from membership_app.payments.adapters.givingfuel_csv import CSVAdapterError
from membership_app.payments.events import PaymentValidationError
from membership_app.payments.pipeline import (
    import_givingfuel_csv,
    record_manual_payment,
    refresh_activity_window,
    run_donorbox_backfill,
)
from membership_app.utils.permissions import admin_required

admin_payments_blueprint = Blueprint("admin_payments", __name__, url_prefix="/admin")


def _text_response(message: str, status: HTTPStatus):
    response = make_response(message, status)
    response.mimetype = "text/plain"
    return response


def _max_upload_bytes() -> int:
    mb_limit = current_app.config.get("PAYMENTS_MAX_UPLOAD_MB", 25)
    try:
        return int(mb_limit) * 1024 * 1024
    except (TypeError, ValueError):
        return 25 * 1024 * 1024


def _upload_too_large(file_storage) -> bool:
    position = file_storage.stream.tell()
    file_storage.stream.seek(0, 2)
    size_bytes = file_storage.stream.tell()
    file_storage.stream.seek(position)
    return size_bytes > _max_upload_bytes()


def _log_admin_action(action: str, details: dict, target_member_id=None) -> None:
    AdminLog.log_action(
        admin_user_id=current_user.id,
        action=action,
        target_member_id=target_member_id,
        details=json.dumps(details, default=str),
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent"),
    )


@admin_payments_blueprint.post("/imports/givingfuel")
@login_required
@admin_required
def import_givingfuel():
    form = GivingFuelImportForm()
    if not form.email_verify.data and request.form.get("email-verify"):
        # Older upload pages post the confirmation as ``email-verify``.
        form.email_verify.data = request.form["email-verify"]
    typed_email = form.email_verify.data

    # Confirmation gate runs before the upload is looked at.
    if not current_user.owns_email(typed_email):
        current_app.logger.warning(
            "GivingFuel import rejected: confirmation e-mail mismatch",
            extra={"user_id": current_user.id},
        )
        return _text_response("Email does not match", HTTPStatus.BAD_REQUEST)

    if not form.validate():
        return _text_response(form.first_error() or "Invalid CSV File", HTTPStatus.BAD_REQUEST)

    file_storage = form.file.data
    if _upload_too_large(file_storage):
        return _text_response("Upload exceeds maximum size limit.", HTTPStatus.REQUEST_ENTITY_TOO_LARGE)

    text_stream = io.TextIOWrapper(file_storage.stream, encoding="utf-8-sig", newline="")
    try:
        summary = import_givingfuel_csv(
            text_stream,
            session=db.session,
            settings=get_provider_settings(current_app),
        )
    except (CSVAdapterError, PaymentValidationError, UnicodeDecodeError) as exc:
        _log_admin_action("GIVINGFUEL_IMPORT_REJECTED", {"filename": file_storage.filename, "error": str(exc)})
        return _text_response(str(exc), HTTPStatus.BAD_REQUEST)
    except SQLAlchemyError as exc:
        current_app.logger.error("GivingFuel import failed: %s", exc, extra={"user_id": current_user.id})
        return _text_response("Database error; no rows were imported.", HTTPStatus.INTERNAL_SERVER_ERROR)
    finally:
        text_stream.detach()

    _log_admin_action(
        "GIVINGFUEL_IMPORT",
        {
            "filename": file_storage.filename,
            "members_added": summary.members_added,
            "payments_added": summary.payments_added,
            "rows_skipped": summary.rows_skipped,
        },
    )
    current_app.logger.info(
        "GivingFuel import by user %s",
        current_user.id,
        extra={"members_added": summary.members_added, "payments_added": summary.payments_added},
    )
    return _text_response(summary.message, HTTPStatus.OK)


def _request_fields() -> dict:
    if request.is_json:
        try:
            body = json.loads(request.get_data(as_text=True) or "{}", parse_float=Decimal)
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}
    return request.form.to_dict()


@admin_payments_blueprint.post("/imports/donorbox-backfill")
@login_required
@admin_required
def donorbox_backfill():
    fields = _request_fields()
    try:
        date_from = date.fromisoformat(str(fields.get("date_from") or "").strip())
    except ValueError:
        return jsonify({"error": "date_from must be YYYY-MM-DD."}), HTTPStatus.BAD_REQUEST

    notify = str(fields.get("notify", "")).lower() in ("1", "true", "on", "yes")
    settings = get_provider_settings(current_app)
    if not settings.donorbox_api_email or not settings.donorbox_api_key:
        return (
            jsonify({"error": "DONORBOX_API_EMAIL and DONORBOX_API_KEY must be set for backfill."}),
            HTTPStatus.BAD_REQUEST,
        )
    summary = run_donorbox_backfill(
        date_from,
        client=get_donorbox_client(current_app),
        settings=settings,
        session=db.session,
        notifier=get_notifier(current_app) if notify else None,
    )
    payload = summary.to_dict()
    _log_admin_action("DONORBOX_BACKFILL", {"date_from": date_from.isoformat(), **payload})
    return jsonify(payload), HTTPStatus.OK


@admin_payments_blueprint.post("/members/<int:member_id>/payments")
@login_required
@admin_required
def add_manual_payment(member_id):
    member = db.session.get(Member, member_id)
    if member is None:
        return jsonify({"error": "Member not found."}), HTTPStatus.NOT_FOUND

    fields = _request_fields()
    try:
        effective_on = date.fromisoformat(str(fields.get("effective_on") or "").strip())
    except ValueError:
        return jsonify({"error": "effective_on must be YYYY-MM-DD."}), HTTPStatus.BAD_REQUEST
    raw_duration = fields.get("duration_months")
    try:
        duration_months = 1 if raw_duration in (None, "") else int(raw_duration)
    except (TypeError, ValueError):
        return jsonify({"error": "duration_months must be an integer."}), HTTPStatus.BAD_REQUEST

    try:
        payment = record_manual_payment(
            db.session,
            member,
            amount=fields.get("amount_paid"),
            effective_on=effective_on,
            payment_method=(fields.get("payment_method") or "").strip() or None,
            duration_months=duration_months,
            notes=(fields.get("notes") or "").strip() or None,
            transaction_id=(str(fields.get("transaction_id") or "")).strip() or None,
        )
        refresh_activity_window(db.session, member.id)
        db.session.commit()
    except PaymentValidationError as exc:
        db.session.rollback()
        return jsonify({"error": str(exc)}), HTTPStatus.BAD_REQUEST
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error("Manual payment failed: %s", exc, extra={"member_id": member_id})
        return jsonify({"error": "Database error while recording payment."}), HTTPStatus.INTERNAL_SERVER_ERROR

    _log_admin_action(
        "MANUAL_PAYMENT",
        {"payment_id": payment.id, "amount_paid": payment.amount_paid},
        target_member_id=member.id,
    )
    return jsonify({"payment_id": payment.id, "member_id": member.id}), HTTPStatus.CREATED


def register_admin_payment_routes(app):
    if "admin_payments" not in app.blueprints:
        app.register_blueprint(admin_payments_blueprint)
