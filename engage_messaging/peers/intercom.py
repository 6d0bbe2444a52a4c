"""Intercom contact upsert.

Searches first and updates on a single match, otherwise creates. Intercom's
search index lags behind writes, so a 409 on create means the contact
exists but is not searchable yet: the host should retry.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from engage_messaging.errors import ProviderError, RetryableError
from engage_messaging.transport import Response, Transport, raise_for_status

logger = logging.getLogger(__name__)

INTERCOM_API = "https://api.intercom.io"
SEARCH_FIELDS = ("email", "external_id", "role")


async def identify_contact(transport: Transport, payload: Mapping[str, Any], *, access_token: str) -> Response:
    """Create or update an Intercom contact.

    Raises:
        RetryableError: Intercom reported a duplicate the search did not find.
    """
    headers = {"Authorization": f"Bearer {access_token}", "Accept": "application/json"}
    try:
        contact_id = await search_contact(transport, payload, headers)
        if contact_id:
            response = await transport.request(
                f"{INTERCOM_API}/contacts/{contact_id}", method="PUT", headers=headers, json=dict(payload)
            )
        else:
            response = await transport.request(
                f"{INTERCOM_API}/contacts", method="POST", headers=headers, json=dict(payload)
            )
        raise_for_status(response)
        return response
    except ProviderError as exc:
        if exc.status == 409:
            logger.info("Intercom reported a duplicate contact; asking host to retry")
            raise RetryableError(
                "Contact was reported duplicated but could not be searched for, "
                "probably due to Intercom search cache not being updated",
                "Duplicate contact",
            ) from exc
        raise


async def search_contact(
    transport: Transport, payload: Mapping[str, Any], headers: Mapping[str, str]
) -> str | None:
    """Return the id of the only contact matching the payload, if exactly one does."""
    query = {
        "operator": "AND",
        "value": [
            {"field": key, "operator": "=", "value": payload[key]} for key in SEARCH_FIELDS if payload.get(key)
        ],
    }
    response = await transport.request(
        f"{INTERCOM_API}/contacts/search", method="POST", headers=headers, json={"query": query}
    )
    raise_for_status(response)
    data = response.json() or {}
    if data.get("total_count") == 1:
        return data["data"][0]["id"]
    return None
