"""Channel strategies for SMS and WhatsApp.

A channel knows its name, which Content API template types it can send,
how to find its external id on a payload, and how to build the
form-encoded Messages.json body.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from engage_messaging.content import ContentResolver
from engage_messaging.errors import ValidationError
from engage_messaging.phone import format_whatsapp_number
from engage_messaging.sendability import EXTERNAL_ID_TYPE, find_external_id
from engage_messaging.types import ExternalId, MessagePayload

MESSAGING_SERVICE_SID_PREFIX = "MG"

MessageBody = dict[str, "str | list[str]"]


class Channel(Protocol):
    """Interface that all channels must implement."""

    channel_type: str
    supported_template_types: tuple[str, ...]

    def get_external_id(self, payload: MessagePayload) -> ExternalId | None:
        ...

    async def get_body(
        self,
        payload: MessagePayload,
        phone: str,
        content: ContentResolver,
        profile: Mapping[str, Any],
    ) -> MessageBody:
        ...


@dataclass(frozen=True)
class SmsChannel:
    """Plain SMS/MMS through Messages.json."""

    channel_type: str = "sms"
    supported_template_types: tuple[str, ...] = ("twilio/text", "twilio/media")

    def get_external_id(self, payload: MessagePayload) -> ExternalId | None:
        return find_external_id(payload.external_ids, self.channel_type, EXTERNAL_ID_TYPE)

    async def get_body(
        self,
        payload: MessagePayload,
        phone: str,
        content: ContentResolver,
        profile: Mapping[str, Any],
    ) -> MessageBody:
        if payload.content_sid:
            template = await content.get_content_template_types(payload.content_sid)
            fields: dict[str, Any] = {"body": template.body, "media": template.media}
        else:
            fields = {"body": payload.body, "media": payload.media}

        rendered = content.render_content(fields, profile)
        text = rendered.get("body")
        media = [url for url in rendered.get("media") or [] if url]
        if not text and not media:
            raise ValidationError("Unable to send an SMS without a body or media", "Missing message content")

        body: MessageBody = {"To": phone}
        if text:
            body["Body"] = text
        if media:
            body["MediaUrl"] = media
        _add_sender(body, payload.from_)
        return body


@dataclass(frozen=True)
class WhatsAppChannel:
    """WhatsApp through Messages.json, always template based."""

    channel_type: str = "whatsapp"
    supported_template_types: tuple[str, ...] = (
        "twilio/text",
        "twilio/media",
        "twilio/quick-reply",
        "twilio/call-to-action",
        "twilio/list-picker",
        "twilio/card",
    )

    def get_external_id(self, payload: MessagePayload) -> ExternalId | None:
        return find_external_id(payload.external_ids, self.channel_type, EXTERNAL_ID_TYPE)

    async def get_body(
        self,
        payload: MessagePayload,
        phone: str,
        content: ContentResolver,
        profile: Mapping[str, Any],
    ) -> MessageBody:
        if not payload.content_sid:
            raise ValidationError("Content SID not in payload", "Missing content SID")
        # Validates that the template type can go out on WhatsApp.
        await content.get_content_template_types(payload.content_sid)

        to = format_whatsapp_number(phone)
        if to is None:
            raise ValidationError(
                "The string supplied did not seem to be a phone number.", "Invalid recipient phone number"
            )

        body: MessageBody = {"To": to, "ContentSid": payload.content_sid}
        if payload.from_ and payload.from_.startswith(MESSAGING_SERVICE_SID_PREFIX):
            body["MessagingServiceSid"] = payload.from_
        else:
            sender = format_whatsapp_number(payload.from_)
            if sender is None:
                raise ValidationError("A valid WhatsApp sender number is required", "Invalid sender phone number")
            body["From"] = sender

        if payload.content_variables:
            variables = content.render_content(payload.content_variables, profile)
            body["ContentVariables"] = json.dumps(variables)
        return body


def _add_sender(body: MessageBody, sender: str | None) -> None:
    if not sender:
        return
    if sender.startswith(MESSAGING_SERVICE_SID_PREFIX):
        body["MessagingServiceSid"] = sender
    else:
        body["From"] = sender


SMS = SmsChannel()
WHATSAPP = WhatsAppChannel()

CHANNELS: dict[str, Channel] = {SMS.channel_type: SMS, WHATSAPP.channel_type: WHATSAPP}
