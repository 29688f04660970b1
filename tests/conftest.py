"""
Shared fixtures for all tests.
"""

import json

import pytest

from tollbit import TollbitClient, TransportResponse


class FakeTransport:
    """In-memory transport: records requests, returns a canned response."""

    def __init__(self, body=b"[]", status_code: int = 200, side_effect=None):
        if not isinstance(body, bytes):
            body = json.dumps(body).encode("utf-8")
        self.response = TransportResponse(status_code=status_code, body=body)
        self.side_effect = side_effect  # callable(ctx) run before answering
        self.calls = []

    def get(self, url, headers, ctx):
        self.calls.append({"url": url, "headers": dict(headers), "ctx": ctx})
        if self.side_effect is not None:
            self.side_effect(ctx)
        return self.response

    @property
    def last_call(self):
        return self.calls[-1]


# Test credentials
SECRET_KEY = "64280b7c9897a66cd1062596518fdf2992361f6477300562dc41d6d108359de2"
ORG_ID = "org-abc"
USER_AGENT = "MyBot"
BOT_UA = "Mozilla/5.0 (compatible; MyBot; +https://tollbit.com/bot)"

SAMPLE_RATE = {
    "priceMicros": 500,
    "currency": "USD",
    "licenseType": "ON_DEMAND_LICENSE",
    "licensePath": "/licenses/on-demand",
    "error": "",
}

SAMPLE_CONTENT = {
    "content": {"header": "<nav>", "main": "hello", "footer": "<footer>"},
    "metadata": '{"title": "Page"}',
    "rate": SAMPLE_RATE,
}


@pytest.fixture
def fake_transport():
    """Transport answering with an empty array."""
    return FakeTransport()


@pytest.fixture
def make_client():
    """Factory: client bound to a FakeTransport with the given body."""
    def _make(body=b"[]", status_code=200, side_effect=None):
        transport = FakeTransport(body, status_code=status_code, side_effect=side_effect)
        client = TollbitClient(SECRET_KEY, ORG_ID, USER_AGENT, transport=transport)
        return client, transport
    return _make


@pytest.fixture
def client(fake_transport):
    return TollbitClient(SECRET_KEY, ORG_ID, USER_AGENT, transport=fake_transport)
