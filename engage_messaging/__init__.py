"""
engage-messaging — Message-send decision and orchestration layer.

Decides, for each outbound personalized SMS/WhatsApp message, whether it
may be dispatched to Twilio; resolves and renders Content API templates
with trait-based Liquid personalization; builds the status-callback URL;
and normalizes provider/transport failures into errors the hosting retry
framework can classify. Every step is logged and counted through a
per-message tracker.

Quick start — SMS::

    from engage_messaging import SMS, HttpxTransport, MessagePayload, MessageSender, Settings

    sender = MessageSender(
        SMS,
        MessagePayload.from_dict({
            "send": True,
            "body": "Hi {{profile.traits.first_name}}!",
            "from": "+14155238886",
            "externalIds": [{
                "type": "phone",
                "id": "+15551234567",
                "channelType": "sms",
                "subscriptionStatus": "subscribed",
            }],
            "traits": {"first_name": "Ada"},
        }),
        Settings(
            twilio_account_sid="AC...",
            twilio_api_key_sid="SK...",
            twilio_api_key_secret="...",
            webhook_url="https://example.com/twilio/status",
            space_id="spa_123",
        ),
        HttpxTransport(),
    )
    response = await sender.send()  # None when the message was skipped

Quick start — WhatsApp (template based)::

    sender = MessageSender(WHATSAPP, MessagePayload(content_sid="HX...", ...), settings, HttpxTransport())

Instrumenting your own operations::

    from engage_messaging import MessageLog, Tracker

    tracker = Tracker(MessageLog(), stats, tags=["space:spa_123"])
    result = await tracker.wrap("lookup", fetch_profile, user_id)

For testing::

    from engage_messaging import MockResponse, MockStatsClient, MockTransport

    transport = MockTransport(responses=[MockResponse(201, {"sid": "SM123"})])

Module overview
---------------
- ``types``        — Payload, Settings, SendabilityResult, ContentTemplate, NormalizedError
- ``errors``       — IntegrationError taxonomy, ProviderError, normalize_error
- ``sendability``  — SendabilityEvaluator
- ``content``      — ContentResolver (Content API fetch, type selection, Liquid rendering)
- ``callback``     — build_callback_url
- ``classifier``   — ProviderErrorClassifier
- ``tracking``     — Tracker, MessageLog, trackable
- ``channels``     — SMS and WhatsApp strategies
- ``sender``       — MessageSender
- ``transport``    — Transport protocol, HttpxTransport
- ``peers/``       — Braze track batches, Intercom contact upsert
- ``mock``         — MockTransport, MockStatsClient

What this library does NOT own (stays in the host framework):
- Field/schema declarations and routing payloads into actions
- Credential storage
- Retry and backoff policy
"""

from .callback import DEFAULT_CONNECTION_OVERRIDES, build_callback_url
from .channels import CHANNELS, SMS, WHATSAPP, Channel, SmsChannel, WhatsAppChannel
from .classifier import RATE_LIMIT_ERROR_CODE, ProviderErrorClassifier
from .content import ContentResolver, render_template
from .errors import (
    IntegrationError,
    ProviderError,
    ProviderResponse,
    RetryableError,
    UpstreamError,
    ValidationError,
    normalize_error,
)
from .mock import MockResponse, MockStatsClient, MockTransport
from .phone import format_whatsapp_number, normalize_phone
from .redact import redact_pii
from .sendability import NON_SENDABLE_STATUSES, SENDABLE_STATUSES, SendabilityEvaluator
from .sender import DEFAULT_HOSTNAME, MessageSender
from .stats import NullStatsClient, StatsClient
from .tracking import ErrorOverride, MessageLog, Tracker, trackable
from .transport import HttpResponse, HttpxTransport, Response, Transport, basic_auth_header, raise_for_status
from .types import (
    ContentTemplate,
    ExternalId,
    MessagePayload,
    NormalizedError,
    SendabilityResult,
    SendabilityStatus,
    Settings,
    TemplateContent,
)

__all__ = [
    # Orchestration
    "MessageSender",
    "DEFAULT_HOSTNAME",
    # Channels
    "Channel",
    "SmsChannel",
    "WhatsAppChannel",
    "SMS",
    "WHATSAPP",
    "CHANNELS",
    # Components
    "SendabilityEvaluator",
    "SENDABLE_STATUSES",
    "NON_SENDABLE_STATUSES",
    "ContentResolver",
    "render_template",
    "build_callback_url",
    "DEFAULT_CONNECTION_OVERRIDES",
    "ProviderErrorClassifier",
    "RATE_LIMIT_ERROR_CODE",
    # Instrumentation
    "Tracker",
    "MessageLog",
    "ErrorOverride",
    "trackable",
    "StatsClient",
    "NullStatsClient",
    # Transport
    "Transport",
    "Response",
    "HttpxTransport",
    "HttpResponse",
    "basic_auth_header",
    "raise_for_status",
    # Errors
    "IntegrationError",
    "ValidationError",
    "UpstreamError",
    "ProviderError",
    "ProviderResponse",
    "RetryableError",
    "normalize_error",
    # Types
    "ContentTemplate",
    "ExternalId",
    "MessagePayload",
    "NormalizedError",
    "SendabilityResult",
    "SendabilityStatus",
    "Settings",
    "TemplateContent",
    # Utilities
    "redact_pii",
    "normalize_phone",
    "format_whatsapp_number",
    # Testing
    "MockTransport",
    "MockResponse",
    "MockStatsClient",
]
