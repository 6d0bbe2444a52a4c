"""Shared test fixtures for the engage_messaging library."""

from typing import Any

import pytest

from engage_messaging import MessagePayload, MockStatsClient, MockTransport, Settings


@pytest.fixture
def settings() -> Settings:
    return Settings(
        twilio_account_sid="ACtest123",
        twilio_api_key_sid="SKtest456",
        twilio_api_key_secret="secret789",
        webhook_url="https://cb.example/hook",
        space_id="spa_1",
        source_id="src_1",
        region="us-west-2",
    )


@pytest.fixture
def stats() -> MockStatsClient:
    return MockStatsClient()


@pytest.fixture
def transport() -> MockTransport:
    return MockTransport()


def make_payload(
    *,
    status: str | None = "subscribed",
    channel_type: str = "sms",
    phone: str | None = "+15551234567",
    **overrides: Any,
) -> MessagePayload:
    """Build a payload with one phone external id."""
    external_ids = overrides.pop("external_ids", None)
    if external_ids is None:
        external_ids = [
            {"type": "phone", "id": phone, "channelType": channel_type, "subscriptionStatus": status}
        ]
    data: dict[str, Any] = {
        "send": True,
        "from": "+14155238886",
        "body": "Hello",
        "externalIds": external_ids,
    }
    data.update(overrides)
    return MessagePayload.from_dict(data)
