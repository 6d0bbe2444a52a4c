"""Twilio Content API template resolution and trait rendering.

Fetches a content template by SID, selects the template type the channel
can send, and renders Liquid placeholders (``{{profile.traits.name}}``)
against the recipient profile.

This module does NOT dispatch messages (that's ``MessageSender.send``).
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from liquid import Environment

from engage_messaging.errors import UpstreamError, ValidationError
from engage_messaging.stats import NullStatsClient, StatsClient
from engage_messaging.tracking import MessageLog, Tracker, trackable
from engage_messaging.transport import Transport, basic_auth_header, raise_for_status
from engage_messaging.types import ContentTemplate, Settings, TemplateContent

logger = logging.getLogger(__name__)

ERROR_METRIC = "actions-personas-messaging-twilio.error"

_LIQUID = Environment()


class ContentResolver:
    """Resolves and renders message content for one channel."""

    def __init__(
        self,
        settings: Settings,
        transport: Transport,
        channel_type: str,
        supported_template_types: Sequence[str],
        *,
        log: MessageLog | None = None,
        stats: StatsClient | None = None,
        tags: list[str] | None = None,
        tracker: Tracker | None = None,
    ) -> None:
        self.settings = settings
        self.transport = transport
        self.channel_type = channel_type
        self.supported_template_types = tuple(supported_template_types)
        self.log = log or MessageLog()
        self.stats = stats or NullStatsClient()
        self.tags = tags if tags is not None else []
        self.tracker = tracker

    @trackable("fetch_template")
    async def fetch_template(self, content_sid: str | None) -> ContentTemplate:
        """GET the template from the Content API.

        Raises:
            ValidationError: ``content_sid`` is empty.
            UpstreamError: The request failed or returned a non-2xx status.
        """
        if not content_sid:
            raise ValidationError("Content SID not in payload", "Missing content SID")

        self.log.info("Get content template from Twilio by ContentSID")
        try:
            response = await self.transport.request(
                f"https://{self.settings.content_hostname}/v1/Content/{content_sid}",
                method="GET",
                headers={
                    "Authorization": basic_auth_header(
                        self.settings.twilio_api_key_sid, self.settings.twilio_api_key_secret
                    )
                },
            )
            raise_for_status(response)
            data = response.json()
        except Exception as exc:
            self.tags.append("reason:get_content_template")
            self.stats.incr(ERROR_METRIC, 1, self.tags)
            self.log.error(
                f"{self.channel_type} failed request to fetch content template from Twilio Content API"
                f" - {self.settings.space_id}",
                exc,
            )
            raise UpstreamError("Unable to fetch content template", "Twilio Content API request failure", 500) from exc

        return ContentTemplate.from_dict(data if isinstance(data, dict) else {})

    @trackable("extract_template_types")
    def extract_template_types(self, template: ContentTemplate) -> TemplateContent:
        """Pick the first template type and return its body and media.

        Raises:
            UpstreamError: The template has no types.
            ValidationError: The first type is not supported by the channel.
        """
        if not template.types:
            self.log.error(
                f"{self.channel_type} template from Twilio Content API does not contain a template type"
                f" - {self.settings.space_id} - [{template.sid}]"
            )
            raise UpstreamError(
                f"{self.channel_type} template does not contain a template type",
                "Unexpected response from Twilio Content API",
                500,
            )

        template_type = next(iter(template.types))
        if template_type not in self.supported_template_types:
            self.log.error(
                f"{self.channel_type} unsupported content template type '{template_type}' - {self.settings.space_id}"
            )
            raise ValidationError(
                f"'{template_type}' content type not supported by {self.channel_type}",
                "Unsupported content type",
            )

        content = template.types[template_type] or {}
        return TemplateContent(body=content.get("body"), media=content.get("media"))

    async def get_content_template_types(self, content_sid: str | None) -> TemplateContent:
        template = await self.fetch_template(content_sid)
        return self.extract_template_types(template)

    @trackable("parse_content")
    def render_content(self, fields: Mapping[str, Any], profile: Mapping[str, Any]) -> dict[str, Any]:
        """Render every field of ``fields`` against ``profile``.

        ``None`` values pass through; lists are rendered element by element.
        Either every field renders or a ValidationError is raised.
        """
        try:
            return {key: _render_value(value, profile) for key, value in fields.items()}
        except Exception as exc:
            self.log.details["error"] = str(exc)
            self.log.error(f"{self.channel_type} liquid template parsing failure - {self.settings.space_id}")
            raise ValidationError(
                f"Unable to parse templating in {self.channel_type}",
                f"{self.channel_type} templating parse failure",
            ) from exc


def render_template(source: str, profile: Mapping[str, Any]) -> str:
    """Render a single Liquid template string."""
    return _LIQUID.from_string(source).render(profile=profile)


def _render_value(value: Any, profile: Mapping[str, Any]) -> Any:
    if value is None:
        return None
    if isinstance(value, list):
        return [render_template(item, profile) for item in value]
    return render_template(value, profile)
