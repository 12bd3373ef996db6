"""Provider payload normalizers and the Donorbox and Webconnex API clients."""

from .donorbox import normalize_donorbox, unwrap_webhook_body
from .donorbox_api import DonorboxAPIClient, DonorboxAPIError, DonorboxPage
from .givingfuel_csv import (
    CSVAdapterError,
    CSVHeaderError,
    CSVRowError,
    GivingFuelCSVAdapter,
    GivingFuelRow,
)
from .webconnex import normalize_webconnex
from .webconnex_api import WebconnexAPIClient, WebconnexAPIError, order_report_url

__all__ = [
    "normalize_webconnex",
    "WebconnexAPIClient",
    "WebconnexAPIError",
    "order_report_url",
    "normalize_donorbox",
    "unwrap_webhook_body",
    "DonorboxAPIClient",
    "DonorboxAPIError",
    "DonorboxPage",
    "CSVAdapterError",
    "CSVHeaderError",
    "CSVRowError",
    "GivingFuelCSVAdapter",
    "GivingFuelRow",
]
