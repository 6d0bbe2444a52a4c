"""Start/success/failure instrumentation for message-send operations.

:class:`Tracker` wraps an operation with three log lines and a success or
error counter. Failures always propagate; an ``on_error`` hook may swap the
error for another one and attach extra metric tags on the way out.

Usage::

    tracker = Tracker(MessageLog(), stats, tags=["space:spa_1"])
    response = await tracker.wrap("dispatch", post_message, body)

    class Resolver:
        tracker: Tracker | None

        @trackable("fetch_template")
        async def fetch_template(self, sid): ...
"""

from __future__ import annotations

import functools
import inspect
import json
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

from engage_messaging.stats import NullStatsClient, StatsClient

logger = logging.getLogger(__name__)

LOG_PREFIX = "TE Messaging: "
STATS_PREFIX = "actions_personas_messaging_twilio"

T = TypeVar("T")


@dataclass(frozen=True)
class ErrorOverride:
    """What an ``on_error`` hook hands back to the tracker."""

    error: BaseException | None = None
    tags: Sequence[str] = ()


OnError = Callable[[BaseException], "ErrorOverride | None"]


class MessageLog:
    """Per-message log context.

    ``details`` is the diagnostic map appended to every line. It is created
    fresh for each message and must only hold redacted identifiers.
    """

    def __init__(self, log: Any = None, details: dict[str, Any] | None = None) -> None:
        self.logger = log if log is not None else logger
        self.details: dict[str, Any] = {} if details is None else details

    def info(self, message: str) -> None:
        self.logger.info("%s%s %s", LOG_PREFIX, message, self._dump())

    def error(self, message: str, error: BaseException | None = None) -> None:
        if error is None:
            self.logger.error("%s%s %s", LOG_PREFIX, message, self._dump())
        else:
            self.logger.error("%s%s %s %s", LOG_PREFIX, message, error, self._dump())

    def _dump(self) -> str:
        return json.dumps(self.details, default=str)


class Tracker:
    """Instruments operations with logs and stats."""

    def __init__(
        self,
        log: MessageLog | None = None,
        stats: StatsClient | None = None,
        tags: Sequence[str] | None = None,
        *,
        prefix: str = STATS_PREFIX,
    ) -> None:
        self.log = log or MessageLog()
        self.stats = stats or NullStatsClient()
        self.tags = list(tags or [])
        self.prefix = prefix

    async def wrap(
        self,
        operation: str,
        fn: Callable[..., Awaitable[T]],
        *args: Any,
        log: bool = True,
        stats: bool = True,
        on_error: OnError | None = None,
        **kwargs: Any,
    ) -> T:
        """Await ``fn(*args, **kwargs)`` under instrumentation."""
        self._started(operation, log)
        try:
            result = await fn(*args, **kwargs)
        except Exception as exc:
            replacement = self._failed(operation, exc, log, stats, on_error)
            if replacement is exc:
                raise
            raise replacement from exc
        self._succeeded(operation, log, stats)
        return result

    def wrap_sync(
        self,
        operation: str,
        fn: Callable[..., T],
        *args: Any,
        log: bool = True,
        stats: bool = True,
        on_error: OnError | None = None,
        **kwargs: Any,
    ) -> T:
        """Call ``fn(*args, **kwargs)`` under instrumentation."""
        self._started(operation, log)
        try:
            result = fn(*args, **kwargs)
        except Exception as exc:
            replacement = self._failed(operation, exc, log, stats, on_error)
            if replacement is exc:
                raise
            raise replacement from exc
        self._succeeded(operation, log, stats)
        return result

    def instrument(self, operation: str, fn: Callable[..., Awaitable[T]], **options: Any) -> Callable[..., Awaitable[T]]:
        """Return an instrumented version of the coroutine function ``fn``."""

        @functools.wraps(fn)
        async def instrumented(*args: Any, **kwargs: Any) -> T:
            return await self.wrap(operation, fn, *args, **options, **kwargs)

        return instrumented

    def instrument_sync(self, operation: str, fn: Callable[..., T], **options: Any) -> Callable[..., T]:
        """Return an instrumented version of the plain function ``fn``."""

        @functools.wraps(fn)
        def instrumented(*args: Any, **kwargs: Any) -> T:
            return self.wrap_sync(operation, fn, *args, **options, **kwargs)

        return instrumented

    # ── Internals ─────────────────────────────────────────────────

    def _started(self, operation: str, log: bool) -> None:
        if log:
            self.log.info(f"Starting: {operation}")

    def _succeeded(self, operation: str, log: bool, stats: bool) -> None:
        if log:
            self.log.info(f"Success: {operation}")
        if stats:
            self.stats.incr(f"{self.prefix}.{operation}.success", 1, self.tags)

    def _failed(
        self,
        operation: str,
        error: Exception,
        log: bool,
        stats: bool,
        on_error: OnError | None,
    ) -> BaseException:
        override = on_error(error) if on_error is not None else None
        replacement: BaseException = error
        extra_tags: Sequence[str] = ()
        if override is not None:
            replacement = override.error or error
            extra_tags = override.tags
        if log:
            self.log.error(f"Failed: {operation}", replacement)
        if stats:
            self.stats.incr(f"{self.prefix}.{operation}.error", 1, [*self.tags, *extra_tags])
        return replacement


def trackable(
    operation: str | None = None,
    *,
    log: bool = True,
    stats: bool = True,
    on_error: Callable[[Any, BaseException], ErrorOverride | None] | None = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Instrument a method through its owner's ``tracker`` attribute.

    ``on_error`` receives the owning instance and the error. Methods whose
    owner has no tracker run uninstrumented.
    """

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        name = operation or fn.__name__

        def bind(instance: Any) -> OnError | None:
            if on_error is None:
                return None
            return functools.partial(on_error, instance)

        if inspect.iscoroutinefunction(fn):

            @functools.wraps(fn)
            async def async_method(self: Any, *args: Any, **kwargs: Any) -> Any:
                tracker: Tracker | None = getattr(self, "tracker", None)
                if tracker is None:
                    return await fn(self, *args, **kwargs)
                return await tracker.wrap(
                    name, fn, self, *args, log=log, stats=stats, on_error=bind(self), **kwargs
                )

            return async_method

        @functools.wraps(fn)
        def method(self: Any, *args: Any, **kwargs: Any) -> Any:
            tracker: Tracker | None = getattr(self, "tracker", None)
            if tracker is None:
                return fn(self, *args, **kwargs)
            return tracker.wrap_sync(name, fn, self, *args, log=log, stats=stats, on_error=bind(self), **kwargs)

        return method

    return decorator
