import pytest
import requests

from membership_app.payments.adapters.webconnex_api import (
    WebconnexAPIClient,
    WebconnexAPIError,
    order_report_url,
)
from membership_app.payments.settings import ProviderSettings


class FakeResponse:
    def __init__(self, *, status_code=200, json_data=None, invalid_json=False):
        self.status_code = status_code
        self._json_data = json_data
        self._invalid_json = invalid_json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"status={self.status_code}")

    def json(self):
        if self._invalid_json:
            raise ValueError("Expecting value")
        return self._json_data


class FakeSession:
    def __init__(self, result):
        self.result = result
        self.get_calls = []

    def get(self, url, **kwargs):
        self.get_calls.append((url, kwargs))
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


def _client(result, api_key="wc-key"):
    settings = ProviderSettings(
        webconnex_api_url="https://api.webconnex.test/v2/public/",
        webconnex_api_key=api_key,
        http_timeout_seconds=2.5,
    )
    session = FakeSession(result)
    return WebconnexAPIClient.from_settings(settings, session=session), session


def test_lookup_sends_api_key_product_and_timeout():
    client, session = _client(FakeResponse(json_data={"data": {"orderId": 31337, "id": 900001}}))

    assert client.lookup_order_id(900001) == 31337

    url, kwargs = session.get_calls[0]
    assert url == "https://api.webconnex.test/v2/public/search/transactions/900001"
    assert kwargs["params"] == {"product": "givingfuel.com"}
    assert kwargs["headers"]["apiKey"] == "wc-key"
    assert kwargs["timeout"] == 2.5


def test_order_report_url_format():
    assert order_report_url(31337, 900001) == "https://manage.webconnex.com/reports/orders/31337/donations/900001"


def test_lookup_without_key_makes_no_request():
    client, session = _client(FakeResponse(json_data={}), api_key=None)
    assert client.is_configured is False
    with pytest.raises(WebconnexAPIError, match="not configured"):
        client.lookup_order_id(1)
    assert session.get_calls == []


@pytest.mark.parametrize(
    "result",
    [
        requests.Timeout("read timed out"),
        FakeResponse(status_code=404, json_data={}),
        FakeResponse(invalid_json=True),
        FakeResponse(json_data=["unexpected"]),
        FakeResponse(json_data={"data": {}}),
        FakeResponse(json_data={"data": {"orderId": "31337"}}),
    ],
)
def test_lookup_failures_are_wrapped(result):
    client, _ = _client(result)
    with pytest.raises(WebconnexAPIError):
        client.lookup_order_id(900001)
