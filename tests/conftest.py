"""Shared fixtures for chekprint tests."""

import pytest

from chekprint.settings import get_settings


@pytest.fixture
def sale_mapping():
    """A sale receipt as the host application sends it."""
    return {
        "companyName": "Bozor",
        "transactionId": 123,
        "sellerName": "Aziz",
        "createdAt": "2024-01-02T14:30:00",
        "products": [
            {"name": "Non", "quantity": 1, "unit": "dona", "price": 10000},
            {"name": "Sut", "quantity": 1, "unit": "l", "price": 15000},
        ],
        "paymentMethods": [{"method": "cash", "amount": 25000}],
        "templateSettings": {"pageWidth": 32, "useAutoCut": True, "feedLineCount": 4},
    }


@pytest.fixture
def purchase_mapping():
    """A purchase receipt: it names a supplier."""
    return {
        "companyName": "Bozor",
        "transactionId": "P-7",
        "supplierName": "Ulgurji savdo markazi",
        "receiverName": "Dilshod",
        "products": [{"name": "Un", "quantity": 2, "unit": "qop", "price": 50000}],
        "paymentMethods": [{"method": "card", "amount": 100000}],
    }


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
