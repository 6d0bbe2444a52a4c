"""Braze ``/users/track`` batch construction.

Each payload is transformed on its own and the results are posted in the
original order. A purchase payload without products keeps its position as
``None`` so per-index error reporting still lines up.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from engage_messaging.errors import ValidationError
from engage_messaging.transport import Response, Transport, raise_for_status

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "USD"
PRODUCT_KEYS: frozenset[str] = frozenset({"product_id", "currency", "price", "quantity"})


@dataclass(frozen=True, slots=True)
class BrazeSettings:
    """Configuration for the Braze REST endpoint."""

    endpoint: str
    api_key: str
    app_id: str | None = None


def to_iso8601(value: str | int | float | datetime | None) -> str | None:
    """Convert a date input to ISO-8601; unparseable values become ``None``."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def get_user_alias(user_alias: Mapping[str, Any] | None) -> dict[str, str] | None:
    """Return the alias only when both name and label are present."""
    if not user_alias or not user_alias.get("alias_name") or not user_alias.get("alias_label"):
        return None
    return {"alias_name": user_alias["alias_name"], "alias_label": user_alias["alias_label"]}


def _identifiers(payload: Mapping[str, Any]) -> dict[str, Any]:
    braze_id = payload.get("braze_id")
    external_id = payload.get("external_id")
    user_alias = get_user_alias(payload.get("user_alias"))
    if not braze_id and not user_alias and not external_id:
        raise ValidationError(
            'One of "external_id" or "user_alias" or "braze_id" is required.',
            "Missing required fields",
        )
    return {"braze_id": braze_id, "external_id": external_id, "user_alias": user_alias}


def build_track_event(settings: BrazeSettings, payload: Mapping[str, Any]) -> dict[str, Any]:
    return {
        **_identifiers(payload),
        "app_id": settings.app_id,
        "name": payload.get("name"),
        "time": to_iso8601(payload.get("time")),
        "properties": payload.get("properties"),
        "_update_existing_only": payload.get("_update_existing_only"),
    }


def build_track_purchase(settings: BrazeSettings, payload: Mapping[str, Any]) -> list[dict[str, Any]] | None:
    identifiers = _identifiers(payload)
    products = payload.get("products") or []
    if not products:
        return None

    properties = {
        key: value for key, value in (payload.get("properties") or {}).items() if key not in PRODUCT_KEYS
    }
    base = {
        **identifiers,
        "app_id": settings.app_id,
        "time": to_iso8601(payload.get("time")),
        "properties": properties,
        "_update_existing_only": payload.get("_update_existing_only"),
    }
    return [
        {
            **base,
            "product_id": product.get("product_id"),
            "currency": product.get("currency") or DEFAULT_CURRENCY,
            "price": product.get("price"),
            "quantity": product.get("quantity"),
        }
        for product in products
    ]


async def send_track_event(
    transport: Transport, settings: BrazeSettings, payloads: Sequence[Mapping[str, Any]]
) -> Response:
    events = [build_track_event(settings, payload) for payload in payloads]
    return await _post_track(transport, settings, {"events": events})


async def send_track_purchase(
    transport: Transport, settings: BrazeSettings, payloads: Sequence[Mapping[str, Any]]
) -> Response:
    purchases = [build_track_purchase(settings, payload) for payload in payloads]
    return await _post_track(transport, settings, {"purchases": purchases})


async def _post_track(transport: Transport, settings: BrazeSettings, body: dict[str, Any]) -> Response:
    url = f"{settings.endpoint.rstrip('/')}/users/track"
    logger.info("Posting %s batch to %s", next(iter(body)), url)
    response = await transport.request(
        url,
        method="POST",
        headers={"Authorization": f"Bearer {settings.api_key}"},
        json=body,
    )
    raise_for_status(response)
    return response
