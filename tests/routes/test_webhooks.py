from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select

from membership_app.models import Member, Payment, db

NEW_MEMBER = "/.webconnex/new-member"
PAYMENT_SUCCESS = "/.webconnex/payment-success"


def _counts():
    return db.session.query(Member).count(), db.session.query(Payment).count()


def test_webconnex_new_member_creates_member_and_payment(post_webconnex, webconnex_payload, fake_notifier):
    response = post_webconnex(NEW_MEMBER, webconnex_payload())

    assert response.status_code == 200
    body = response.get_json()
    member = db.session.execute(select(Member)).scalar_one()
    payment = db.session.execute(select(Payment)).scalar_one()
    assert body == {
        "created_member_id": member.id,
        "member_id": member.id,
        "transaction_id": payment.id,
        "provider_transaction_id": "900001",
    }
    assert member.email == "new.member@example.org"
    assert payment.amount_paid == Decimal("25.00")
    assert payment.platform == "webconnex"
    assert payment.effective_on == date(2024, 3, 1)
    assert len(fake_notifier.calls) == 1


def test_same_webhook_twice_keeps_one_member_but_records_two_payments(
    post_webconnex, webconnex_payload, fake_notifier
):
    first = post_webconnex(NEW_MEMBER, webconnex_payload())
    second = post_webconnex(NEW_MEMBER, webconnex_payload())

    assert first.status_code == second.status_code == 200
    assert second.get_json()["created_member_id"] is None
    assert second.get_json()["member_id"] == first.get_json()["member_id"]
    # Known gap: re-delivery of the same provider transaction is not deduplicated.
    assert _counts() == (1, 2)
    assert len(fake_notifier.calls) == 1


def test_dedup_flag_turns_redelivery_into_no_content(post_webconnex, webconnex_payload, app, monkeypatch):
    monkeypatch.setitem(app.config, "PAYMENTS_DEDUPLICATE_TRANSACTIONS", True)
    assert post_webconnex(NEW_MEMBER, webconnex_payload()).status_code == 200
    assert post_webconnex(NEW_MEMBER, webconnex_payload()).status_code == 204
    assert _counts() == (1, 1)


@pytest.mark.parametrize("signature", ["", "deadbeef", "zz-not-hex"])
def test_bad_or_missing_signature_is_unauthorized_and_writes_nothing(post_webconnex, webconnex_payload, signature):
    response = post_webconnex(NEW_MEMBER, webconnex_payload(), signature=signature)
    assert response.status_code == 401
    assert _counts() == (0, 0)


def test_signature_from_other_endpoint_secret_is_rejected(post_webconnex, webconnex_payload):
    response = post_webconnex(NEW_MEMBER, webconnex_payload(), secret_key="WEBCONNEX_PAYMENT_SUCCESS_HMAC")
    assert response.status_code == 401
    assert _counts() == (0, 0)


def test_unsigned_garbage_is_rejected_before_parsing(client):
    response = client.post(NEW_MEMBER, data=b"{not json", content_type="application/json")
    assert response.status_code == 401


def test_signed_but_unparseable_body_is_bad_request(client, app):
    from membership_app.payments.signatures import compute_signature

    body = b"{not json"
    response = client.post(
        NEW_MEMBER,
        data=body,
        headers={"X-Webconnex-Signature": compute_signature(app.config["WEBCONNEX_NEW_MEMBER_HMAC"], body)},
    )
    assert response.status_code == 400
    assert "error" in response.get_json()


def test_signed_payload_missing_fields_is_bad_request(post_webconnex, webconnex_payload):
    response = post_webconnex(NEW_MEMBER, webconnex_payload(total=None))
    assert response.status_code == 400
    assert _counts() == (0, 0)


def test_incomplete_webconnex_status_is_no_content(post_webconnex, webconnex_payload):
    response = post_webconnex(NEW_MEMBER, webconnex_payload(status="pending"))
    assert response.status_code == 204
    assert response.data == b""
    assert _counts() == (0, 0)


def test_payment_success_records_without_notifying(post_webconnex, webconnex_payload, fake_notifier):
    response = post_webconnex(
        PAYMENT_SUCCESS, webconnex_payload(), secret_key="WEBCONNEX_PAYMENT_SUCCESS_HMAC"
    )
    assert response.status_code == 200
    assert response.get_json()["created_member_id"] is not None
    assert fake_notifier.calls == []


def test_notification_failure_is_reported_without_rollback(post_webconnex, webconnex_payload, failing_notifier):
    response = post_webconnex(NEW_MEMBER, webconnex_payload())

    assert response.status_code == 200
    assert response.get_json()["notification_error"] == "SMTPAuthenticationError: bad credentials"
    assert _counts() == (1, 1)


def test_database_failure_returns_500(post_webconnex, webconnex_payload, monkeypatch):
    from sqlalchemy.exc import OperationalError

    from membership_app.payments.pipeline import reconcile as reconcile_module

    def explode(*args, **kwargs):
        raise OperationalError("INSERT", {}, Exception("database is locked"))

    monkeypatch.setattr(reconcile_module, "record_payment", explode)
    response = post_webconnex(NEW_MEMBER, webconnex_payload())

    assert response.status_code == 500
    assert "database is locked" in response.get_json()["error"]
    assert _counts() == (0, 0)


def test_donorbox_new_donation_records_net_amount(post_donorbox, donorbox_donation, fake_notifier):
    response = post_donorbox([donorbox_donation()])

    assert response.status_code == 200
    body = response.get_json()
    assert body["provider_transaction_id"] == "5001"
    payment = db.session.execute(select(Payment)).scalar_one()
    assert payment.amount_paid == Decimal("18.92")
    assert payment.platform == "donorbox"
    assert payment.effective_on == date(2024, 4, 2)
    assert fake_notifier.calls[0][1].payer_email == "donor@example.org"


@pytest.mark.parametrize(
    "overrides",
    [{"action": "update"}, {"campaign": {"id": 1}}, {"status": "refunded"}],
)
def test_donorbox_out_of_scope_donation_is_no_content(post_donorbox, donorbox_donation, overrides):
    assert post_donorbox([donorbox_donation(**overrides)]).status_code == 204
    assert _counts() == (0, 0)


def test_donorbox_body_must_be_single_element_array(post_donorbox, donorbox_donation):
    assert post_donorbox(donorbox_donation()).status_code == 400
    assert post_donorbox([donorbox_donation(), donorbox_donation(id=2)]).status_code == 400
    assert _counts() == (0, 0)


def test_donorbox_wrong_secret_is_unauthorized(post_donorbox, donorbox_donation):
    assert post_donorbox([donorbox_donation()], secret="wrong").status_code == 401
    assert _counts() == (0, 0)


def test_donorbox_existing_member_gets_no_welcome(post_donorbox, donorbox_donation, fake_notifier):
    db.session.add(Member(email="donor@example.org", first_name="Dana", last_name="Donor"))
    db.session.commit()

    response = post_donorbox([donorbox_donation()])

    assert response.get_json()["created_member_id"] is None
    assert fake_notifier.calls == []
