"""Tests for status-callback URL construction."""

from urllib.parse import parse_qsl, urlsplit

import pytest

from engage_messaging import DEFAULT_CONNECTION_OVERRIDES, ValidationError, build_callback_url


class TestBuildCallbackUrl:
    def test_full_url(self):
        url = build_callback_url(
            "https://cb.example/hook", None, {"foo": "bar"}, "phone", "+15551234567", space_id="spa_1"
        )
        assert url == (
            "https://cb.example/hook?foo=bar&space_id=spa_1"
            "&__segment_internal_external_id_key__=phone"
            "&__segment_internal_external_id_value__=%2B15551234567"
            "#rp=all&rc=5"
        )

    def test_no_base_url_returns_none(self):
        assert build_callback_url(None, None, {"foo": "bar"}, "phone", "+1555") is None
        assert build_callback_url("", "rp=none", {}, "phone", "+1555") is None

    def test_connection_overrides_replace_default(self):
        url = build_callback_url("https://cb.example/hook", "rp=none&rc=1", {}, "phone", "+1555")
        assert urlsplit(url).fragment == "rp=none&rc=1"

    def test_default_fragment(self):
        url = build_callback_url("https://cb.example/hook", None, {}, "phone", "+1555")
        assert urlsplit(url).fragment == DEFAULT_CONNECTION_OVERRIDES

    def test_custom_args_keep_order_and_are_stringified(self):
        url = build_callback_url(
            "https://cb.example/hook", None, {"b": 2, "a": True, "c": "x y"}, "phone", "+1555", space_id="spa_1"
        )
        params = parse_qsl(urlsplit(url).query)
        assert params[:3] == [("b", "2"), ("a", "true"), ("c", "x y")]
        assert [key for key, _ in params][3:] == [
            "space_id",
            "__segment_internal_external_id_key__",
            "__segment_internal_external_id_value__",
        ]

    def test_existing_query_is_kept(self):
        url = build_callback_url("https://cb.example/hook?token=abc", None, {}, "phone", "+1555")
        assert urlsplit(url).query.startswith("token=abc&space_id=")

    def test_bare_host_gets_root_path(self):
        url = build_callback_url("https://cb.example", None, {}, "phone", "+1555")
        assert url.startswith("https://cb.example/?")

    def test_synthetic_keys_override_custom_args(self):
        url = build_callback_url("https://cb.example/hook", None, {"space_id": "spoofed"}, "phone", "+1", space_id="spa_1")
        assert dict(parse_qsl(urlsplit(url).query))["space_id"] == "spa_1"

    @pytest.mark.parametrize("base_url", ["not a url", "/relative/path", "https://[::1"])
    def test_malformed_url_raises(self, base_url):
        with pytest.raises(ValidationError):
            build_callback_url(base_url, None, {}, "phone", "+1555")
