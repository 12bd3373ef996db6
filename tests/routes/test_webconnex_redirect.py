from membership_app.payments import PAYMENTS_EXTENSION_KEY
from membership_app.payments.adapters.webconnex_api import WebconnexAPIError

URL = "/.webconnex/redirect/transaction/900001"


class StubWebconnexClient:
    def __init__(self, *, order_id=None, error=None, configured=True):
        self.order_id = order_id
        self.error = error
        self.is_configured = configured
        self.lookups = []

    def lookup_order_id(self, transaction_id):
        self.lookups.append(transaction_id)
        if self.error:
            raise self.error
        return self.order_id


def _install(app, stub):
    app.extensions[PAYMENTS_EXTENSION_KEY]["webconnex_client"] = stub
    return stub


def test_redirects_to_order_report(app, client):
    stub = _install(app, StubWebconnexClient(order_id=31337))

    response = client.get(URL)

    assert response.status_code == 308
    assert response.headers["Location"] == "https://manage.webconnex.com/reports/orders/31337/donations/900001"
    assert stub.lookups == [900001]


def test_lookup_failure_is_bad_gateway(app, client):
    _install(app, StubWebconnexClient(error=WebconnexAPIError("read timed out")))

    response = client.get(URL)

    assert response.status_code == 502
    assert "read timed out" in response.get_json()["error"]


def test_missing_api_key_is_service_unavailable(client):
    # TestingConfig leaves WEBCONNEX_API_KEY unset, so the real client is unconfigured.
    response = client.get(URL)
    assert response.status_code == 503


def test_non_numeric_transaction_is_not_found(app, client):
    stub = _install(app, StubWebconnexClient(order_id=1))
    assert client.get("/.webconnex/redirect/transaction/abc").status_code == 404
    assert stub.lookups == []
