"""Decide whether a message may be dispatched.

The decision combines the payload's ``send`` flag with the subscription
state of the phone external id that matches the active channel.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from engage_messaging.errors import ValidationError
from engage_messaging.stats import NullStatsClient, StatsClient
from engage_messaging.tracking import Tracker, trackable
from engage_messaging.types import ExternalId, MessagePayload, SendabilityResult, SendabilityStatus

logger = logging.getLogger(__name__)

EXTERNAL_ID_TYPE = "phone"
SENDABLE_STATUSES: frozenset[str] = frozenset({"subscribed", "true"})
NON_SENDABLE_STATUSES: frozenset[str] = frozenset({"unsubscribed", "did not subscribed", "false"})
STATS_PREFIX = "actions-personas-messaging-twilio"


def find_external_id(
    external_ids: Iterable[ExternalId],
    channel_type: str,
    external_id_type: str = EXTERNAL_ID_TYPE,
) -> ExternalId | None:
    """Return the first external id of ``external_id_type`` on ``channel_type``."""
    for external_id in external_ids:
        if external_id.type == external_id_type and (external_id.channel_type or "").lower() == channel_type:
            return external_id
    return None


class SendabilityEvaluator:
    """Computes a :class:`SendabilityResult` for a payload."""

    def __init__(
        self,
        stats: StatsClient | None = None,
        tags: Sequence[str] | None = None,
        *,
        tracker: Tracker | None = None,
        sendable_statuses: Iterable[str] = SENDABLE_STATUSES,
        non_sendable_statuses: Iterable[str] = NON_SENDABLE_STATUSES,
    ) -> None:
        self.stats = stats or NullStatsClient()
        self.tags = list(tags or [])
        self.tracker = tracker
        self.sendable_statuses = frozenset(sendable_statuses)
        self.non_sendable_statuses = frozenset(non_sendable_statuses)

    @trackable("get_sendability")
    def evaluate(self, payload: MessagePayload, channel_type: str) -> SendabilityResult:
        """Evaluate ``payload`` for the channel named ``channel_type``.

        Raises:
            ValidationError: The subscription status is neither sendable nor
                non-sendable.
        """
        external_id = find_external_id(payload.external_ids, channel_type)

        if not payload.send:
            self._incr("send-disabled")
            return SendabilityResult(SendabilityStatus.SEND_DISABLED)

        subscription_status = ((external_id.subscription_status if external_id else None) or "").strip().lower()

        if not subscription_status or subscription_status in self.non_sendable_statuses:
            self._incr("not-subscribed")
            return SendabilityResult(SendabilityStatus.DO_NOT_SEND)

        if subscription_status not in self.sendable_statuses:
            self._incr("error")
            raise ValidationError(
                f'Failed to process the subscription state: "{subscription_status}"',
                SendabilityStatus.INVALID_SUBSCRIPTION_STATUS.value,
            )

        self._incr("subscribed")
        phone = payload.to_number or (external_id.id if external_id else None)
        if not phone:
            return SendabilityResult(SendabilityStatus.NO_SENDER_PHONE)
        return SendabilityResult(SendabilityStatus.SHOULD_SEND, phone=phone)

    def _incr(self, name: str) -> None:
        self.stats.incr(f"{STATS_PREFIX}.{name}", 1, self.tags)
