"""Classification of provider and transport failures.

Records what the provider said about a failure into the per-message
diagnostics, emits response and rate-limit counters, and makes sure every
error reaching the host carries an HTTP status it can act on.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any, NoReturn

from engage_messaging.errors import DEFAULT_ERROR_CODE, IntegrationError, normalize_error
from engage_messaging.stats import NullStatsClient, StatsClient
from engage_messaging.tracking import STATS_PREFIX, MessageLog, Tracker, trackable
from engage_messaging.types import NormalizedError

logger = logging.getLogger(__name__)

RATE_LIMIT_ERROR_CODE = 63018
RATE_LIMIT_STATUS = 429
REQUEST_ID_HEADER = "twilio-request-id"


def _header(headers: Any, name: str) -> str | None:
    if headers is None:
        return None
    getter = getattr(headers, "get", None)
    if getter is None:
        return None
    return getter(name) or getter(name.title())


def _response_data(error: BaseException) -> Mapping[str, Any]:
    data = getattr(getattr(error, "response", None), "data", None)
    return data if isinstance(data, Mapping) else {}


class ProviderErrorClassifier:
    """Turns whatever the transport raised into a host-classifiable error."""

    def __init__(
        self,
        log: MessageLog | None = None,
        stats: StatsClient | None = None,
        tags: Sequence[str] | None = None,
        *,
        space_id: str | None = None,
        tracker: Tracker | None = None,
        rate_limit_code: int = RATE_LIMIT_ERROR_CODE,
    ) -> None:
        self.log = log or MessageLog()
        self.stats = stats or NullStatsClient()
        self.tags = list(tags or [])
        self.space_id = space_id
        self.tracker = tracker
        self.rate_limit_code = rate_limit_code

    @trackable("classify_provider_error", stats=False)
    def classify(self, error: object) -> object:
        """Return the error the host should see for ``error``.

        Anything that is not an exception is returned unchanged. Exceptions
        without a top-level ``status`` are wrapped in an IntegrationError
        built from the provider's response body.
        """
        if not isinstance(error, BaseException):
            return error

        response = getattr(error, "response", None)
        data = _response_data(error)
        body_code = data.get("code")
        status = getattr(error, "status", None)
        resolved_status = status or data.get("status")

        self.log.details["twilioApiError_response_data"] = dict(data) or None
        self.log.details["twilio-request-id"] = _header(getattr(response, "headers", None), REQUEST_ID_HEADER)
        self.log.details["error"] = str(error)
        self.log.error(f"Twilio API error - {self.space_id}")

        tags = [*self.tags, f"twilio_status_code:{resolved_status}"]
        self.stats.incr(f"{STATS_PREFIX}.response", 1, tags)

        classified: BaseException = error
        if not status:
            code = body_code or resolved_status
            classified = IntegrationError(
                data.get("message") or getattr(error, "msg", None) or str(error) or DEFAULT_ERROR_CODE,
                str(code) if code else DEFAULT_ERROR_CODE,
                resolved_status,
            )

        if body_code is None:
            body_code = getattr(error, "code", None)
        if _as_int(body_code) == self.rate_limit_code or _as_int(resolved_status) == RATE_LIMIT_STATUS:
            self.stats.incr(f"{STATS_PREFIX}.rate_limited", 1, tags)

        return classified

    def classify_and_raise(self, error: BaseException) -> NoReturn:
        """Classify ``error`` and raise the result."""
        classified = self.classify(error)
        if classified is error:
            raise error
        assert isinstance(classified, BaseException)
        raise classified from error

    def normalize(self, error: BaseException) -> NormalizedError:
        """Classify ``error`` and return its normalized shape."""
        classified = self.classify(error)
        assert isinstance(classified, BaseException)
        return normalize_error(classified)


def _as_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
