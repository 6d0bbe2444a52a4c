"""Error taxonomy surfaced to the hosting retry framework.

Every error carries a human readable ``message``, a machine readable
``code`` and, where known, the HTTP ``status`` the host uses to decide
whether to retry.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from twilio.base.exceptions import TwilioRestException  # type: ignore[import-untyped]

from engage_messaging.types import NormalizedError

DEFAULT_ERROR_CODE = "Provider Request Error"


def _is_retryable_status(status: int | None) -> bool:
    return status is None or status == 429 or status >= 500


class IntegrationError(RuntimeError):
    """Base error for failures surfaced to the host."""

    default_status: int | None = None

    def __init__(self, message: str, code: str | None = None, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or DEFAULT_ERROR_CODE
        self.status = status if status is not None else self.default_status

    @property
    def retryable(self) -> bool:
        return _is_retryable_status(self.status)

    def normalized(self) -> NormalizedError:
        return NormalizedError(
            message=self.message,
            code=self.code,
            http_status=self.status,
            retryable=self.retryable,
        )


class ValidationError(IntegrationError):
    """Bad input: missing identifiers, unknown subscription state, bad templates."""

    default_status = 400


class UpstreamError(IntegrationError):
    """A dependency (e.g. the Content API) failed or answered unexpectedly."""

    default_status = 500


class RetryableError(IntegrationError):
    """Tells the host to retry without treating the failure as terminal."""

    default_status = 500

    @property
    def retryable(self) -> bool:
        return True


class ProviderResponse:
    """Parsed body and headers of a failed provider response."""

    def __init__(self, data: Mapping[str, Any] | None = None, headers: Mapping[str, str] | None = None) -> None:
        self.data: Mapping[str, Any] = data or {}
        self.headers: Mapping[str, str] = headers or {}


class ProviderError(IntegrationError):
    """Dispatch failure reported by the transport.

    ``status`` is ``None`` when the request never produced an HTTP response
    (connection reset, timeout, ...).
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        status: int | None = None,
        *,
        response: ProviderResponse | None = None,
    ) -> None:
        super().__init__(message, code, status)
        self.response = response or ProviderResponse()


def normalize_error(error: BaseException) -> NormalizedError:
    """Convert any exception into a :class:`NormalizedError`."""
    if isinstance(error, IntegrationError):
        return error.normalized()

    status = getattr(error, "status", None)
    code = getattr(error, "code", None)
    if isinstance(error, TwilioRestException):
        message = error.msg or str(error)
    else:
        message = str(error) or type(error).__name__
    return NormalizedError(
        message=message,
        code=str(code) if code is not None else DEFAULT_ERROR_CODE,
        http_status=status if isinstance(status, int) else None,
        retryable=_is_retryable_status(status if isinstance(status, int) else None),
    )
