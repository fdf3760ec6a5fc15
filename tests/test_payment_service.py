import asyncio

import httpx
import pytest

from clinic.services.payment_service import PaymentError, PaymentService


def reply_with(monkeypatch, response_factory):
    """Make every outbound provider call answer with ``response_factory(url)``."""
    calls = []

    async def fake_post(self, url, **kwargs):
        calls.append(url)
        return response_factory(url)

    monkeypatch.setattr(httpx.AsyncClient, "post", fake_post)
    return calls


def provider_service():
    return PaymentService("sk_test", api_base="https://payments.test/v1/")


def test_creates_intent(monkeypatch):
    calls = reply_with(monkeypatch, lambda url: httpx.Response(
        200,
        json={"id": "pi_123", "client_secret": "pi_123_secret", "amount": 5000, "currency": "usd"},
        request=httpx.Request("POST", url),
    ))

    intent = asyncio.run(provider_service().create_payment_intent(5000))
    assert intent.id == "pi_123"
    assert intent.client_secret == "pi_123_secret"
    assert calls == ["https://payments.test/v1/payment_intents"]


def test_rejected_intent(monkeypatch):
    reply_with(monkeypatch, lambda url: httpx.Response(
        402, json={"error": {"message": "card declined"}}, request=httpx.Request("POST", url),
    ))

    with pytest.raises(PaymentError):
        asyncio.run(provider_service().create_payment_intent(5000))


def test_html_reply_is_a_payment_error(monkeypatch):
    reply_with(monkeypatch, lambda url: httpx.Response(
        200, text="<html>gateway timeout</html>", request=httpx.Request("POST", url),
    ))

    with pytest.raises(PaymentError):
        asyncio.run(provider_service().create_payment_intent(5000))


def test_reply_without_id_is_a_payment_error(monkeypatch):
    reply_with(monkeypatch, lambda url: httpx.Response(
        200, json={"client_secret": "orphan"}, request=httpx.Request("POST", url),
    ))

    with pytest.raises(PaymentError):
        asyncio.run(provider_service().create_payment_intent(5000))


def test_unconfigured_provider():
    with pytest.raises(PaymentError):
        asyncio.run(PaymentService(None).create_payment_intent(5000))
