"""
Tests for tollbit/client.py - TollbitClient.

Uses FakeTransport (conftest) so request building and response parsing are
exercised without network access.
"""

import json

import pytest

from tollbit import (
    APIError,
    ConfigurationError,
    ContentNotFoundError,
    CryptoError,
    LicenseType,
    MalformedResponseError,
    NotFoundError,
    RateNotFoundError,
    RateResult,
    RequestCancelledError,
    RequestContext,
    RequestsTransport,
    SerializationError,
    TokenParams,
    TollbitClient,
    TransportError,
    UnsupportedCurrencyError,
    decode_token,
    new_client,
)
from tollbit.config import ClientConfig

from conftest import (
    BOT_UA,
    ORG_ID,
    SAMPLE_CONTENT,
    SAMPLE_RATE,
    SECRET_KEY,
    USER_AGENT,
    FakeTransport,
)


PARAMS = TokenParams(
    url="https://www.site.com/page",
    max_price_micros=500,
    currency="USD",
    license_type=LicenseType.ON_DEMAND,
)


# ============================================================
# Construction
# ============================================================

class TestConstruction:

    def test_new_client(self):
        client = new_client(SECRET_KEY, ORG_ID, USER_AGENT, transport=FakeTransport())
        assert isinstance(client, TollbitClient)
        assert client.organization_id == ORG_ID
        assert client.user_agent == USER_AGENT

    def test_default_transport(self):
        with new_client(SECRET_KEY, ORG_ID, USER_AGENT) as client:
            assert isinstance(client.transport, RequestsTransport)

    def test_default_transports_not_shared(self):
        a = TollbitClient(SECRET_KEY, ORG_ID, USER_AGENT)
        b = TollbitClient(SECRET_KEY, ORG_ID, USER_AGENT)
        assert a.transport is not b.transport
        assert a.transport.session is not b.transport.session

    def test_new_client_timeout_and_proxy(self):
        proxy = {"https": "http://proxy.local:3128"}
        client = new_client(SECRET_KEY, ORG_ID, USER_AGENT, timeout=3.0, proxy=proxy)
        assert client.config.timeout == 3.0
        assert client.transport.timeout == 3.0
        assert client.transport.session.proxies["https"] == "http://proxy.local:3128"

    @pytest.mark.parametrize("args", [
        ("", ORG_ID, USER_AGENT),
        (SECRET_KEY, "", USER_AGENT),
        (SECRET_KEY, ORG_ID, ""),
    ])
    def test_missing_identity_raises(self, args):
        with pytest.raises(ConfigurationError):
            TollbitClient(*args, transport=FakeTransport())

    def test_repr_hides_secret(self, client):
        assert SECRET_KEY not in repr(client)


# ============================================================
# generate_token
# ============================================================

class TestGenerateToken:

    def test_end_to_end_token(self):
        client = new_client("secret123abcdef", "org-abc", "MyBot", transport=FakeTransport())
        token = client.generate_token(PARAMS)

        assert isinstance(token, str) and token
        decoded = decode_token(token, "secret123abcdef")
        assert decoded.url == "https://www.site.com/page"
        assert decoded.org_cuid == "org-abc"
        assert decoded.user_agent == "MyBot"
        assert decoded.max_price_micros == 500
        assert decoded.currency == "USD"
        assert decoded.license_type is LicenseType.ON_DEMAND

    def test_tokens_are_randomized(self, client):
        assert client.generate_token(PARAMS) != client.generate_token(PARAMS)

    def test_token_does_not_decode_with_other_secret(self, client):
        token = client.generate_token(PARAMS)
        with pytest.raises(CryptoError):
            decode_token(token, "other-secret")

    def test_unsupported_currency(self, client):
        with pytest.raises(UnsupportedCurrencyError):
            client.generate_token(TokenParams(url="https://site.com", max_price_micros=1, currency="EUR"))

    def test_unsupported_currency_is_serialization_error(self):
        assert issubclass(UnsupportedCurrencyError, SerializationError)

    def test_custom_supported_currencies(self):
        config = ClientConfig(supported_currencies=frozenset({"USD", "EUR"}))
        client = TollbitClient(SECRET_KEY, ORG_ID, USER_AGENT, transport=FakeTransport(), config=config)
        token = client.generate_token(TokenParams(url="https://site.com", max_price_micros=1, currency="EUR"))
        assert decode_token(token, SECRET_KEY).currency == "EUR"

    def test_negative_price(self, client):
        with pytest.raises(SerializationError):
            client.generate_token(TokenParams(url="https://site.com", max_price_micros=-1))

    def test_non_int_price(self, client):
        with pytest.raises(SerializationError):
            client.generate_token(TokenParams(url="https://site.com", max_price_micros=1.5))

    def test_unknown_license_type_passthrough(self, client):
        token = client.generate_token(TokenParams(url="https://site.com", max_price_micros=1, license_type="NEW_LICENSE"))
        assert decode_token(token, SECRET_KEY).license_type == "NEW_LICENSE"


# ============================================================
# get_content_with_token / get_content
# ============================================================

class TestGetContent:

    def test_returns_first_element(self, make_client):
        second = dict(SAMPLE_CONTENT, content={"main": "second"})
        client, _ = make_client([SAMPLE_CONTENT, second])
        token = client.generate_token(PARAMS)

        result = client.get_content_with_token(token)

        assert result.main == "hello"
        assert result.content.header == "<nav>"
        assert result.content.footer == "<footer>"
        assert result.metadata == '{"title": "Page"}'
        assert result.rate == RateResult.from_dict(SAMPLE_RATE)

    def test_request_shape(self, make_client):
        client, transport = make_client([SAMPLE_CONTENT])
        token = client.generate_token(PARAMS)

        client.get_content_with_token(token)

        call = transport.last_call
        assert call["url"] == "https://api.tollbit.com/dev/v1/content/site.com/page"
        assert call["headers"] == {
            "TollbitOrgCuid": ORG_ID,
            "TollbitToken": token,
            "User-Agent": BOT_UA,
        }

    def test_minimal_main(self, make_client):
        client, _ = make_client([{"content": {"main": "hello"}}])
        result = client.get_content_with_token(client.generate_token(PARAMS))
        assert result.content.main == "hello"

    def test_empty_array_not_found(self, make_client):
        client, _ = make_client([])
        with pytest.raises(ContentNotFoundError):
            client.get_content_with_token(client.generate_token(PARAMS))

    def test_empty_main_not_found(self, make_client):
        body = [{"content": {"header": "", "main": "", "footer": ""}, "metadata": "", "rate": SAMPLE_RATE}]
        client, _ = make_client(body)
        with pytest.raises(NotFoundError):
            client.get_content_with_token(client.generate_token(PARAMS))

    def test_missing_content_not_found(self, make_client):
        client, _ = make_client([{"metadata": "m"}])
        with pytest.raises(ContentNotFoundError):
            client.get_content_with_token(client.generate_token(PARAMS))

    def test_org_header_comes_from_token(self, make_client):
        """Token minted by another client of the same secret keeps its org id."""
        other = TollbitClient(SECRET_KEY, "org-other", "OtherBot", transport=FakeTransport())
        token = other.generate_token(PARAMS)

        client, transport = make_client([SAMPLE_CONTENT])
        client.get_content_with_token(token)

        assert transport.last_call["headers"]["TollbitOrgCuid"] == "org-other"
        assert transport.last_call["headers"]["User-Agent"] == BOT_UA

    def test_foreign_secret_token_rejected(self, make_client):
        other = TollbitClient("different-secret", ORG_ID, USER_AGENT, transport=FakeTransport())
        token = other.generate_token(PARAMS)

        client, transport = make_client([SAMPLE_CONTENT])
        with pytest.raises(CryptoError):
            client.get_content_with_token(token)
        assert transport.calls == []

    def test_garbage_token_rejected(self, make_client):
        client, transport = make_client([SAMPLE_CONTENT])
        with pytest.raises(CryptoError):
            client.get_content_with_token("garbage")
        assert transport.calls == []

    def test_get_content_composes(self, make_client):
        client, transport = make_client([SAMPLE_CONTENT])
        result = client.get_content(PARAMS)

        assert result.main == "hello"
        sent_token = transport.last_call["headers"]["TollbitToken"]
        assert decode_token(sent_token, SECRET_KEY).url == PARAMS.url

    def test_get_content_bad_currency_no_request(self, make_client):
        client, transport = make_client([SAMPLE_CONTENT])
        with pytest.raises(UnsupportedCurrencyError):
            client.get_content(TokenParams(url="https://site.com", max_price_micros=1, currency="GBP"))
        assert transport.calls == []


# ============================================================
# get_rate
# ============================================================

class TestGetRate:

    def test_returns_first_element(self, make_client):
        client, _ = make_client([SAMPLE_RATE, dict(SAMPLE_RATE, priceMicros=9)])
        rate = client.get_rate("https://www.site.com/page")
        assert rate == RateResult(
            price_micros=500,
            currency="USD",
            license_type="ON_DEMAND_LICENSE",
            license_path="/licenses/on-demand",
            error="",
        )

    def test_request_shape(self, make_client):
        client, transport = make_client([SAMPLE_RATE])
        client.get_rate("http://www.site.com/page")

        call = transport.last_call
        assert call["url"] == "https://api.tollbit.com/dev/v1/rate/site.com/page"
        assert call["headers"] == {"User-Agent": BOT_UA}

    def test_empty_array_not_found(self, make_client):
        client, _ = make_client([])
        with pytest.raises(RateNotFoundError):
            client.get_rate("https://site.com/page")

    def test_error_field_returned_verbatim(self, make_client):
        client, _ = make_client([{"error": "no license for this page"}])
        rate = client.get_rate("site.com/page")
        assert rate.error == "no license for this page"
        assert rate.price_micros == 0


# ============================================================
# Response validation
# ============================================================

class TestMalformedResponses:

    @pytest.mark.parametrize("body", [
        b"not json",
        b"\xff\xfe",
        b'{"content": {"main": "hello"}}',
        b'"hello"',
        b"null",
        b"[1, 2]",
        b'[{"priceMicros": "lots"}]',
    ])
    def test_rate_malformed(self, make_client, body):
        client, _ = make_client(body)
        with pytest.raises(MalformedResponseError):
            client.get_rate("site.com/page")

    @pytest.mark.parametrize("body", [
        b"<html>rate limited</html>",
        b'{"content": {"main": "hello"}}',
        b'["hello"]',
        b'[{"content": {"main": ["hello"]}}]',
    ])
    def test_content_malformed(self, make_client, body):
        client, _ = make_client(body)
        with pytest.raises(MalformedResponseError):
            client.get_content(PARAMS)

    def test_non_2xx_raises_api_error(self, make_client):
        client, _ = make_client(b'{"error": "unauthorized"}', status_code=401)
        with pytest.raises(APIError) as exc_info:
            client.get_rate("site.com/page")
        assert exc_info.value.status_code == 401
        assert "unauthorized" in str(exc_info.value)

    def test_api_error_is_transport_error(self):
        assert issubclass(APIError, TransportError)


# ============================================================
# Cancellation
# ============================================================

class TestCancellation:

    def test_cancelled_before_send(self, make_client):
        client, transport = make_client([SAMPLE_RATE])
        ctx = RequestContext()
        ctx.cancel()

        with pytest.raises(RequestCancelledError):
            client.get_rate("site.com/page", ctx)
        assert transport.calls == []

    def test_cancelled_during_transport(self, make_client):
        """A cancel while the transport is busy wins over its response."""
        client, transport = make_client([SAMPLE_CONTENT], side_effect=lambda ctx: ctx.cancel())
        ctx = RequestContext()

        with pytest.raises(RequestCancelledError):
            client.get_content(PARAMS, ctx)
        assert len(transport.calls) == 1
        assert transport.last_call["ctx"] is ctx

    def test_transport_cancel_error_propagates(self, make_client):
        def _raise(ctx):
            raise RequestCancelledError("aborted")

        client, _ = make_client([SAMPLE_RATE], side_effect=_raise)
        with pytest.raises(RequestCancelledError):
            client.get_rate("site.com/page", RequestContext())

    def test_context_passed_to_transport(self, make_client):
        client, transport = make_client([SAMPLE_RATE])
        ctx = RequestContext(timeout=5.0)
        client.get_rate("site.com/page", ctx)
        assert transport.last_call["ctx"] is ctx

    def test_fresh_context_when_omitted(self, make_client):
        client, transport = make_client([SAMPLE_RATE])
        client.get_rate("site.com/page")
        assert isinstance(transport.last_call["ctx"], RequestContext)
