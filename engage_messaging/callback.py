"""Status-callback URL construction."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import urlencode, urlsplit, urlunsplit

from engage_messaging.errors import ValidationError

DEFAULT_CONNECTION_OVERRIDES = "rp=all&rc=5"
EXTERNAL_ID_KEY_PARAM = "__segment_internal_external_id_key__"
EXTERNAL_ID_VALUE_PARAM = "__segment_internal_external_id_value__"


def build_callback_url(
    base_url: str | None,
    connection_overrides: str | None,
    custom_args: Mapping[str, Any] | None,
    external_id_type: str | None,
    external_id_value: str | None,
    *,
    space_id: str | None = None,
    default_connection_overrides: str = DEFAULT_CONNECTION_OVERRIDES,
) -> str | None:
    """Build the provider StatusCallback URL, or ``None`` without a base URL.

    Every custom arg plus ``space_id`` and the external id key/value are
    appended as query parameters; the fragment carries the connection
    overrides.

    Raises:
        ValidationError: ``base_url`` is not an absolute URL.
    """
    if not base_url:
        return None

    # A broken URL must abort the send rather than drop delivery analytics.
    try:
        parts = urlsplit(base_url)
    except ValueError as exc:
        raise ValidationError(f"Invalid webhook URL: {base_url}", "Invalid webhook URL") from exc
    if not parts.scheme or not parts.netloc:
        raise ValidationError(f"Invalid webhook URL: {base_url}", "Invalid webhook URL")

    params = {
        **(custom_args or {}),
        "space_id": space_id,
        EXTERNAL_ID_KEY_PARAM: external_id_type,
        EXTERNAL_ID_VALUE_PARAM: external_id_value,
    }
    query = urlencode([(key, _stringify(value)) for key, value in params.items()])
    if parts.query:
        query = f"{parts.query}&{query}"

    return urlunsplit(
        (
            parts.scheme,
            parts.netloc,
            parts.path or "/",
            query,
            connection_overrides or default_connection_overrides,
        )
    )


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
