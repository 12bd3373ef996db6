"""Shared fixtures for pipeline tests"""

import pytest

from membership_app.payments.settings import ProviderSettings


@pytest.fixture
def settings():
    return ProviderSettings(
        donorbox_secret="test-donorbox-secret",
        donorbox_campaign_ids=(4242,),
        donorbox_api_url="https://donorbox.test/api/v1",
        donorbox_api_email="api@psychedelicclub.org",
        donorbox_api_key="key",
        http_timeout_seconds=3.5,
        donorbox_api_per_page=2,
    )


@pytest.fixture
def dedupe_settings(settings):
    from dataclasses import replace

    return replace(settings, deduplicate_transactions=True)
