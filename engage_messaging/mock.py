"""Mock transport and stats client for testing.

Records every request and metric and returns configurable results.
Useful for unit testing code that depends on the send layer without
hitting real providers.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from .transport import FormData


@dataclass
class MockResponse:
    """Canned response returned by :class:`MockTransport`."""

    status: int = 201
    data: Any = field(default_factory=dict)
    headers: Mapping[str, str] = field(default_factory=dict)

    def json(self) -> Any:
        return self.data


@dataclass
class RecordedRequest:
    """Record of a request made through the MockTransport."""

    url: str
    method: str
    headers: dict[str, str]
    data: dict[str, Any] | None = None
    json: Any = None


class MockTransport:
    """Test transport that records requests and returns queued results.

    Usage::

        transport = MockTransport(responses=[MockResponse(200, {"types": {...}}), MockResponse(201)])
        await sender.send()
        assert transport.requests[1].data["To"] == "+15551234567"

    Queue an exception to simulate a failure::

        transport = MockTransport(responses=[ProviderError("boom", status=503)])
    """

    def __init__(
        self,
        *,
        responses: Sequence[MockResponse | BaseException] | None = None,
        default: MockResponse | None = None,
    ) -> None:
        self.responses: list[MockResponse | BaseException] = list(responses or [])
        self.default = default or MockResponse()
        self.requests: list[RecordedRequest] = []

    async def request(
        self,
        url: str,
        *,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        data: FormData | None = None,
        json: Any = None,
    ) -> MockResponse:
        self.requests.append(
            RecordedRequest(
                url=url,
                method=method,
                headers=dict(headers or {}),
                data=dict(data) if data is not None else None,
                json=json,
            )
        )
        result = self.responses.pop(0) if self.responses else self.default
        if isinstance(result, BaseException):
            raise result
        return result

    def reset(self) -> None:
        """Clear all recorded requests."""
        self.requests.clear()


@dataclass
class RecordedMetric:
    kind: str
    metric: str
    value: float
    tags: list[str]


class MockStatsClient:
    """Stats client that records every metric."""

    def __init__(self) -> None:
        self.metrics: list[RecordedMetric] = []

    def incr(self, metric: str, delta: int = 1, tags: Sequence[str] | None = None) -> None:
        self.metrics.append(RecordedMetric("incr", metric, delta, list(tags or [])))

    def histogram(self, metric: str, value: float, tags: Sequence[str] | None = None) -> None:
        self.metrics.append(RecordedMetric("histogram", metric, value, list(tags or [])))

    def count(self, metric: str) -> int:
        """Number of times ``metric`` was emitted."""
        return sum(1 for record in self.metrics if record.metric == metric)

    def names(self) -> list[str]:
        return [record.metric for record in self.metrics]
