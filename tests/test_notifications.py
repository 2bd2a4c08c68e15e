import pytest
import requests

from app.core.config import settings
from app.services import notification_service
from app.services.notification_service import dispatch_post_order_notifications


class FakeResponse:
    def __init__(self, ok=True, status_code=200, text=""):
        self.ok = ok
        self.status_code = status_code
        self.text = text


@pytest.fixture()
def functions_url(monkeypatch):
    monkeypatch.setattr(settings, "FUNCTIONS_BASE_URL", "https://functions.internal/v1/")
    monkeypatch.setattr(settings, "SERVICE_ROLE_KEY", "service-key")


def _record(monkeypatch, responses):
    calls = []

    def fake_post(url, json=None, headers=None, timeout=None):
        calls.append((url, json, headers))
        result = responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    monkeypatch.setattr(notification_service.requests, "post", fake_post)
    return calls


def test_invoice_then_email(functions_url, monkeypatch):
    calls = _record(monkeypatch, [FakeResponse(), FakeResponse()])

    dispatch_post_order_notifications("order-1")

    assert [c[0] for c in calls] == [
        "https://functions.internal/v1/generate-invoice",
        "https://functions.internal/v1/send-order-email",
    ]
    assert calls[0][1] == {"orderId": "order-1", "invoiceType": "proforma"}
    assert calls[1][1] == {"orderId": "order-1", "emailType": "order_placed"}
    assert calls[0][2]["Authorization"] == "Bearer service-key"


def test_failed_invoice_skips_email(functions_url, monkeypatch):
    calls = _record(monkeypatch, [FakeResponse(ok=False, status_code=500, text="pdf error")])

    dispatch_post_order_notifications("order-2")

    assert len(calls) == 1


def test_network_errors_are_swallowed(functions_url, monkeypatch):
    _record(monkeypatch, [requests.ConnectionError("down")])
    dispatch_post_order_notifications("order-3")

    _record(monkeypatch, [FakeResponse(), requests.Timeout("slow")])
    dispatch_post_order_notifications("order-4")


def test_nothing_sent_without_base_url(monkeypatch):
    monkeypatch.setattr(settings, "FUNCTIONS_BASE_URL", "")
    calls = _record(monkeypatch, [])

    dispatch_post_order_notifications("order-5")

    assert calls == []
