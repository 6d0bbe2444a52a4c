"""Message sender — the entry point for one outbound message.

Runs the per-message chain under instrumentation::

    sendability → content (templates, rendering) → status callback
        → POST Messages.json → provider error classification on failure

Nothing is kept between messages: create one sender per payload.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from engage_messaging.callback import build_callback_url
from engage_messaging.channels import Channel, MessageBody
from engage_messaging.classifier import ProviderErrorClassifier
from engage_messaging.content import ContentResolver
from engage_messaging.redact import redact_pii
from engage_messaging.sendability import EXTERNAL_ID_TYPE, SendabilityEvaluator
from engage_messaging.stats import NullStatsClient, StatsClient
from engage_messaging.tracking import STATS_PREFIX, ErrorOverride, MessageLog, Tracker, trackable
from engage_messaging.transport import Response, Transport, basic_auth_header, raise_for_status
from engage_messaging.types import MessagePayload, Settings

logger = logging.getLogger(__name__)

DEFAULT_HOSTNAME = "api.twilio.com"


def _on_dispatch_error(sender: MessageSender, error: BaseException) -> ErrorOverride:
    classified = sender.classifier.classify(error)
    return ErrorOverride(error=classified if isinstance(classified, BaseException) else error)


class MessageSender:
    """Decides, builds and dispatches a single message.

    Usage::

        from engage_messaging import SMS, HttpxTransport, MessagePayload, MessageSender, Settings

        sender = MessageSender(SMS, MessagePayload.from_dict(raw), Settings.from_dict(raw_settings), HttpxTransport())
        response = await sender.send()
        if response is None:
            print("Skipped")
    """

    def __init__(
        self,
        channel: Channel,
        payload: MessagePayload,
        settings: Settings,
        transport: Transport,
        *,
        stats: StatsClient | None = None,
        tags: list[str] | None = None,
        logger: Any = None,
        message_id: str | None = None,
    ) -> None:
        self.channel = channel
        self.payload = payload
        self.settings = settings
        self.transport = transport
        self.message_id = message_id
        self.stats = stats or NullStatsClient()
        self.tags = list(tags or [])
        self.log = MessageLog(logger)
        self.tracker = Tracker(self.log, self.stats, self.tags)
        self.sendability = SendabilityEvaluator(self.stats, self.tags, tracker=self.tracker)
        self.content = ContentResolver(
            settings,
            transport,
            channel.channel_type,
            channel.supported_template_types,
            log=self.log,
            stats=self.stats,
            tags=self.tags,
            tracker=self.tracker,
        )
        self.classifier = ProviderErrorClassifier(
            self.log, self.stats, self.tags, space_id=settings.space_id, tracker=self.tracker
        )

    # ── Public API ────────────────────────────────────────────────

    async def send(self) -> Response | None:
        """Send the message if it is sendable.

        Returns the provider response, or ``None`` when the message was
        skipped (send disabled, not subscribed, no phone).
        """
        self.init_log_details()
        return await self.tracker.wrap("send", self._send)

    def init_log_details(self) -> None:
        """Populate the diagnostics logged with every line for this message."""
        self.log.details.update(
            {
                "externalIds": [
                    {
                        "type": eid.type,
                        "id": redact_pii(eid.id),
                        "channelType": eid.channel_type,
                        "subscriptionStatus": eid.subscription_status,
                    }
                    for eid in self.payload.external_ids
                ],
                "shouldSend": self.payload.send,
                "contentSid": self.payload.content_sid,
                "sourceId": self.settings.source_id,
                "spaceId": self.settings.space_id,
                "twilioApiKeySID": self.settings.twilio_api_key_sid,
                "region": self.settings.region,
                "messageId": self.message_id,
                "channelType": self.channel.channel_type,
            }
        )
        if self.payload.user_id:
            self.log.details["userId"] = self.payload.user_id

    @trackable("get_webhook_url_with_params")
    def get_webhook_url_with_params(self, external_id_type: str | None, external_id_value: str | None) -> str | None:
        return build_callback_url(
            self.settings.webhook_url,
            self.settings.connection_overrides,
            self.payload.custom_args,
            external_id_type,
            external_id_value,
            space_id=self.settings.space_id,
        )

    @trackable("dispatch", on_error=_on_dispatch_error)
    async def dispatch(self, body: MessageBody) -> Response:
        """POST the form-encoded body to Messages.json."""
        hostname = self.settings.twilio_hostname or DEFAULT_HOSTNAME
        response = await self.transport.request(
            f"https://{hostname}/2010-04-01/Accounts/{self.settings.twilio_account_sid}/Messages.json",
            method="POST",
            headers={
                "Authorization": basic_auth_header(
                    self.settings.twilio_api_key_sid, self.settings.twilio_api_key_secret
                ),
                "Content-Type": "application/x-www-form-urlencoded",
            },
            data=body,
        )
        raise_for_status(response)
        return response

    # ── Private ───────────────────────────────────────────────────

    async def _send(self) -> Response | None:
        result = self.sendability.evaluate(self.payload, self.channel.channel_type)
        if not result.should_send or result.phone is None:
            self.log.info(f"Not sending message, sendability status: {result.status.value}")
            return None

        profile = {"user_id": self.payload.user_id, "phone": result.phone, "traits": self.payload.traits}
        body = await self.channel.get_body(self.payload, result.phone, self.content, profile)

        callback_url = self.get_webhook_url_with_params(EXTERNAL_ID_TYPE, result.phone)
        if callback_url:
            body["StatusCallback"] = callback_url

        response = await self.dispatch(body)
        self._record_delivery(response)
        return response

    def _record_delivery(self, response: Response) -> None:
        tags = [*self.tags, f"twilio_status_code:{response.status}"]
        self.stats.incr(f"{STATS_PREFIX}.response", 1, tags)

        occurred_at = parse_timestamp(self.payload.event_occurred_ts)
        if occurred_at is not None:
            latency_ms = (datetime.now(timezone.utc) - occurred_at).total_seconds() * 1000
            self.stats.histogram(f"{STATS_PREFIX}.message_delivery_latency", latency_ms, tags)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 string or epoch milliseconds; ``None`` if unparseable."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    if not isinstance(value, str):
        logger.warning("Ignoring eventOccurredTS of type %s", type(value).__name__)
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.warning("Ignoring unparseable eventOccurredTS: %s", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
