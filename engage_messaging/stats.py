"""Stats client protocol."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol


class StatsClient(Protocol):
    """Interface of the host's metrics client."""

    def incr(self, metric: str, delta: int = 1, tags: Sequence[str] | None = None) -> None:
        ...

    def histogram(self, metric: str, value: float, tags: Sequence[str] | None = None) -> None:
        ...


class NullStatsClient:
    """Discards every metric. Used when the host provides no stats client."""

    def incr(self, metric: str, delta: int = 1, tags: Sequence[str] | None = None) -> None:
        return None

    def histogram(self, metric: str, value: float, tags: Sequence[str] | None = None) -> None:
        return None
