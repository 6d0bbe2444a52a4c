"""Tests for the httpx-backed transport."""

import asyncio
import base64

import httpx
import pytest

from engage_messaging import HttpxTransport, ProviderError, basic_auth_header


def _transport(handler) -> HttpxTransport:
    return HttpxTransport(httpx.AsyncClient(transport=httpx.MockTransport(handler)))


class TestHttpxTransport:
    def test_success_returns_response(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "GET"
            assert request.headers["Authorization"] == "Basic abc"
            return httpx.Response(200, json={"sid": "HX1"}, headers={"twilio-request-id": "RQ1"})

        response = asyncio.run(
            _transport(handler).request("https://content.example/v1/Content/HX1", headers={"Authorization": "Basic abc"})
        )
        assert response.status == 200
        assert response.json() == {"sid": "HX1"}
        assert response.headers["twilio-request-id"] == "RQ1"

    def test_form_body_with_repeated_keys(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = request.content.decode()
            seen["type"] = request.headers["Content-Type"]
            return httpx.Response(201, json={"sid": "SM1"})

        asyncio.run(
            _transport(handler).request(
                "https://api.example/Messages.json",
                method="POST",
                data={"To": "+1555", "MediaUrl": ["https://a.example/1.png", "https://a.example/2.png"]},
            )
        )
        assert seen["type"] == "application/x-www-form-urlencoded"
        assert seen["body"].count("MediaUrl=") == 2
        assert "To=%2B1555" in seen["body"]

    def test_http_error_raises_provider_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                429,
                json={"code": 63018, "message": "Rate limit exceeded", "status": 429},
                headers={"twilio-request-id": "RQ9"},
            )

        with pytest.raises(ProviderError) as excinfo:
            asyncio.run(_transport(handler).request("https://api.example/Messages.json", method="POST"))

        error = excinfo.value
        assert error.status == 429
        assert error.code == "63018"
        assert error.message == "Rate limit exceeded"
        assert error.response.data["code"] == 63018
        assert error.response.headers["twilio-request-id"] == "RQ9"

    def test_non_json_error_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="Bad Gateway")

        with pytest.raises(ProviderError) as excinfo:
            asyncio.run(_transport(handler).request("https://api.example/x"))
        assert excinfo.value.status == 502
        assert excinfo.value.response.data == {}

    def test_network_error_has_no_status(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ProviderError) as excinfo:
            asyncio.run(_transport(handler).request("https://api.example/x"))
        assert excinfo.value.status is None
        assert isinstance(excinfo.value.__cause__, httpx.ConnectError)


class TestBasicAuthHeader:
    def test_encodes_credentials(self):
        header = basic_auth_header("SK123", "secret")
        assert header.startswith("Basic ")
        assert base64.b64decode(header[6:]).decode() == "SK123:secret"
