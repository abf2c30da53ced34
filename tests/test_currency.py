# tests/test_currency.py
"""
Tests del proveedor de tipo de cambio (sin red: sesión y reloj falsos).
"""

import requests

from tradejournal.currency import RateProvider
from tradejournal.errors import RateFetchError


class FakeResponse:
    def __init__(self, payload=None, status=200):
        self._payload = payload
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    """Devuelve las respuestas en orden y guarda las llamadas."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def make_provider(session, clock=None, **kw):
    return RateProvider(
        api_key="k",
        url="https://rates.example/latest",
        ttl_seconds=3600,
        fallback_rate=16000,
        session=session,
        clock=clock or FakeClock(),
        **kw,
    )


def test_fetch_sends_expected_params_and_returns_rate():
    session = FakeSession(FakeResponse({"data": {"IDR": 15500.5}}))
    quote = make_provider(session).get_rate()
    assert quote.rate == 15500.5
    assert quote.error is None and not quote.from_cache
    call = session.calls[0]
    assert call["url"] == "https://rates.example/latest"
    assert call["params"] == {"apikey": "k", "currencies": "IDR", "base_currency": "USD"}
    assert call["timeout"] is not None


def test_cache_is_reused_within_ttl_and_refreshed_after():
    clock = FakeClock()
    session = FakeSession(FakeResponse({"data": {"IDR": 15000}}), FakeResponse({"data": {"IDR": 15100}}))
    provider = make_provider(session, clock)

    assert provider.get_rate().rate == 15000
    clock.now = 3599
    cached = provider.get_rate()
    assert cached.rate == 15000 and cached.from_cache
    assert len(session.calls) == 1

    clock.now = 3600
    assert provider.get_rate().rate == 15100
    assert len(session.calls) == 2


def test_force_bypasses_cache():
    session = FakeSession(FakeResponse({"data": {"IDR": 1}}), FakeResponse({"data": {"IDR": 2}}))
    provider = make_provider(session)
    provider.get_rate()
    assert provider.get_rate(force=True).rate == 2


def test_network_error_falls_back_and_records_error():
    session = FakeSession(requests.ConnectionError("sin red"))
    provider = make_provider(session)
    quote = provider.get_rate()
    assert quote.rate == 16000
    assert isinstance(quote.error, requests.ConnectionError)
    assert provider.error is quote.error


def test_http_error_keeps_last_good_rate():
    clock = FakeClock()
    session = FakeSession(FakeResponse({"data": {"IDR": 15000}}), FakeResponse(status=429))
    provider = make_provider(session, clock)
    provider.get_rate()
    clock.now = 10_000
    quote = provider.get_rate()
    assert quote.rate == 15000
    assert isinstance(quote.error, requests.HTTPError)


def test_error_is_cleared_after_successful_fetch():
    session = FakeSession(requests.Timeout("lento"), FakeResponse({"data": {"IDR": 15000}}))
    provider = make_provider(session)
    assert provider.get_rate().error is not None
    quote = provider.get_rate()
    assert quote.error is None and provider.error is None


def test_invalid_payloads_raise_internally_and_fall_back():
    bad = [
        FakeResponse({"data": {}}),
        FakeResponse({"nope": 1}),
        FakeResponse(ValueError("no es json")),
        FakeResponse({"data": {"IDR": "15000"}}),
        FakeResponse({"data": {"IDR": -1}}),
        FakeResponse({"data": {"IDR": True}}),
    ]
    provider = make_provider(FakeSession(*bad))
    for _ in bad:
        quote = provider.get_rate()
        assert quote.rate == 16000
        assert isinstance(quote.error, RateFetchError)
