"""Core types for the message-send decision layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

FALSY_FLAG_VALUES = frozenset({"", "0", "false", "no", "off"})


def _as_flag(value: Any) -> bool:
    """Read a host flag; strings such as ``"false"`` or ``"0"`` are falsy."""
    if isinstance(value, str):
        return value.strip().lower() not in FALSY_FLAG_VALUES
    return bool(value)


class SendabilityStatus(str, Enum):
    """Outcome of evaluating whether a message may be dispatched."""

    SHOULD_SEND = "should_send"
    DO_NOT_SEND = "do_not_send"
    SEND_DISABLED = "send_disabled"
    NO_SENDER_PHONE = "no_sender_phone"
    INVALID_SUBSCRIPTION_STATUS = "invalid_subscription_status"


@dataclass(frozen=True, slots=True)
class SendabilityResult:
    """Result of a sendability evaluation.

    ``phone`` is set exactly when ``status`` is ``SHOULD_SEND``.
    """

    status: SendabilityStatus
    phone: str | None = None

    def __post_init__(self) -> None:
        if (self.status == SendabilityStatus.SHOULD_SEND) != bool(self.phone):
            raise ValueError(f"phone must be set if and only if status is {SendabilityStatus.SHOULD_SEND.value}")

    @property
    def should_send(self) -> bool:
        return self.status == SendabilityStatus.SHOULD_SEND


# ── Payload ───────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class ExternalId:
    """A channel identifier carrying its consent state."""

    type: str
    id: str | None = None
    channel_type: str | None = None
    subscription_status: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExternalId:
        return cls(
            type=data.get("type", ""),
            id=data.get("id"),
            channel_type=data.get("channelType"),
            subscription_status=data.get("subscriptionStatus"),
        )


@dataclass(frozen=True, slots=True)
class MessagePayload:
    """One outbound personalized message as mapped by the host framework."""

    external_ids: list[ExternalId] = field(default_factory=list)
    to_number: str | None = None
    from_: str | None = None
    body: str | None = None
    media: list[str] | None = None
    content_sid: str | None = None
    content_variables: dict[str, str] = field(default_factory=dict)
    custom_args: dict[str, Any] = field(default_factory=dict)
    send: bool = False
    traits: dict[str, Any] = field(default_factory=dict)
    event_occurred_ts: str | int | float | None = None
    user_id: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MessagePayload:
        """Build a payload from the host framework's camelCase mapping."""
        return cls(
            external_ids=[ExternalId.from_dict(item) for item in data.get("externalIds") or []],
            to_number=data.get("toNumber"),
            from_=data.get("from"),
            body=data.get("body"),
            media=data.get("media"),
            content_sid=data.get("contentSid"),
            content_variables=dict(data.get("contentVariables") or {}),
            custom_args=dict(data.get("customArgs") or {}),
            send=_as_flag(data.get("send", False)),
            traits=dict(data.get("traits") or {}),
            event_occurred_ts=data.get("eventOccurredTS"),
            user_id=data.get("userId"),
        )


# ── Configuration ─────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class Settings:
    """Destination settings shared by every message of a space."""

    twilio_account_sid: str
    twilio_api_key_sid: str
    twilio_api_key_secret: str
    twilio_hostname: str | None = None
    content_hostname: str = "content.twilio.com"
    webhook_url: str | None = None
    connection_overrides: str | None = None
    space_id: str | None = None
    source_id: str | None = None
    region: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Settings:
        return cls(
            twilio_account_sid=data["twilioAccountSID"],
            twilio_api_key_sid=data["twilioApiKeySID"],
            twilio_api_key_secret=data["twilioApiKeySecret"],
            twilio_hostname=data.get("twilioHostname"),
            content_hostname=data.get("contentHostname") or "content.twilio.com",
            webhook_url=data.get("webhookUrl"),
            connection_overrides=data.get("connectionOverrides"),
            space_id=data.get("spaceId"),
            source_id=data.get("sourceId"),
            region=data.get("region"),
        )


# ── Content templates ─────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class TemplateContent:
    """The renderable fields of one content template type."""

    body: str | None = None
    media: list[str] | None = None


@dataclass
class ContentTemplate:
    """Response data from the Twilio Content API for a single template."""

    sid: str
    friendly_name: str = ""
    language: str | None = None
    types: dict[str, Any] | None = None
    variables: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ContentTemplate:
        """Parse a Twilio API response into a ContentTemplate."""
        return cls(
            sid=data.get("sid", ""),
            friendly_name=data.get("friendly_name", ""),
            language=data.get("language"),
            types=data.get("types"),
            variables=data.get("variables"),
        )


# ── Errors ────────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class NormalizedError:
    """Provider-independent shape of a classified failure."""

    message: str
    code: str
    http_status: int | None
    retryable: bool
