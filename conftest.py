# conftest.py

import os

import pytest
from flask_login import FlaskLoginClient
from werkzeug.security import generate_password_hash

# Set testing environment BEFORE importing app so app.py picks TestingConfig
os.environ["FLASK_ENV"] = "testing"

# Now import app and other modules after environment is set
from app import app as flask_app  # noqa: E402
from membership_app.models import User, db  # noqa: E402
from membership_app.payments import PAYMENTS_EXTENSION_KEY  # noqa: E402


def pytest_configure(config):
    config.addinivalue_line("markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')")
    config.addinivalue_line("markers", "integration: exercises routes end-to-end through the database")


def _reset_payment_state(app):
    state = app.extensions.setdefault(PAYMENTS_EXTENSION_KEY, {})
    state.update({"settings": None, "notifier": None, "donorbox_client": None, "webconnex_client": None})


@pytest.fixture(scope="function")
def app():
    """Flask application bound to a fresh in-memory database per test"""
    flask_app.config.update(
        {
            "TESTING": True,
            "WTF_CSRF_ENABLED": False,
            "ENABLE_FILE_LOGGING": False,
            "ENABLE_WELCOME_EMAILS": False,
        }
    )
    flask_app.test_client_class = FlaskLoginClient
    _reset_payment_state(flask_app)

    with flask_app.app_context():
        db.drop_all()
        db.create_all()
        yield flask_app
        db.session.remove()
        db.drop_all()

    _reset_payment_state(flask_app)


@pytest.fixture(autouse=True)
def app_context(app):
    """Automatically provide app context for all tests"""
    with app.app_context():
        yield


@pytest.fixture
def client(app):
    """Anonymous test client"""
    return app.test_client()


@pytest.fixture
def runner(app):
    """Create a test CLI runner for the Flask application"""
    return app.test_cli_runner()


@pytest.fixture
def admin_user(app):
    """Persisted operator account with admin rights"""
    user = User(
        username="treasurer",
        email="Treasurer@PsychedelicClub.org",
        password_hash=generate_password_hash("adminpass123"),
        first_name="Tess",
        last_name="Urer",
        is_active=True,
        is_admin=True,
    )
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def staff_user(app):
    """Persisted operator account without admin rights"""
    user = User(
        username="volunteer",
        email="volunteer@psychedelicclub.org",
        password_hash=generate_password_hash("staffpass123"),
        is_active=True,
        is_admin=False,
    )
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def admin_client(app, admin_user):
    """Test client logged in as ``admin_user``"""
    return app.test_client(user=admin_user)



@pytest.fixture
def webconnex_payload():
    """Factory for Webconnex webhook bodies"""

    def build(**overrides):
        data = {
            "transactionId": 900001,
            "total": "25.00",
            "formId": 101,
            "status": "completed",
            "transactionDate": "2024-03-01T15:04:05Z",
            "billing": {
                "email": "  New.Member@Example.org ",
                "name": {"first": "Nova", "last": "Member"},
                "paymentMethod": "card",
            },
        }
        data.update(overrides)
        return {"data": data}

    return build


@pytest.fixture
def donorbox_donation():
    """Factory for a single Donorbox donation object"""

    def build(**overrides):
        donation = {
            "id": 5001,
            "action": "new",
            "campaign": {"id": 4242, "name": "Membership"},
            "donor": {"email": "Donor@Example.org", "first_name": "Dana", "last_name": "Donor"},
            "amount": "20.00",
            "net_amount": "18.92",
            "donation_date": "2024-04-02T10:11:12.000Z",
            "donation_type": "stripe",
            "status": "paid",
            "recurring": False,
        }
        donation.update(overrides)
        return donation

    return build
