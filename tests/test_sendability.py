"""Tests for the sendability evaluator."""

import pytest

from conftest import make_payload
from engage_messaging import MockStatsClient, SendabilityEvaluator, SendabilityStatus, ValidationError
from engage_messaging.sendability import find_external_id


def _evaluator(stats: MockStatsClient) -> SendabilityEvaluator:
    return SendabilityEvaluator(stats, ["space:spa_1"])


class TestSendDisabled:
    def test_send_false_is_disabled(self, stats: MockStatsClient):
        result = _evaluator(stats).evaluate(make_payload(send=False), "sms")
        assert result.status == SendabilityStatus.SEND_DISABLED
        assert result.phone is None
        assert stats.names() == ["actions-personas-messaging-twilio.send-disabled"]

    def test_send_false_wins_over_invalid_status(self, stats: MockStatsClient):
        result = _evaluator(stats).evaluate(make_payload(send=False, status="maybe"), "sms")
        assert result.status == SendabilityStatus.SEND_DISABLED


class TestNotSubscribed:
    @pytest.mark.parametrize("status", ["unsubscribed", "did not subscribed", "false", "UNSUBSCRIBED", "", None])
    def test_non_sendable_statuses(self, stats: MockStatsClient, status):
        result = _evaluator(stats).evaluate(make_payload(status=status), "sms")
        assert result.status == SendabilityStatus.DO_NOT_SEND
        assert stats.count("actions-personas-messaging-twilio.not-subscribed") == 1

    def test_no_matching_external_id(self, stats: MockStatsClient):
        result = _evaluator(stats).evaluate(make_payload(channel_type="whatsapp"), "sms")
        assert result.status == SendabilityStatus.DO_NOT_SEND


class TestSubscribed:
    @pytest.mark.parametrize("status", ["subscribed", "true", "Subscribed", "TRUE"])
    def test_sendable_statuses_use_external_id(self, stats: MockStatsClient, status):
        result = _evaluator(stats).evaluate(make_payload(status=status), "sms")
        assert result.status == SendabilityStatus.SHOULD_SEND
        assert result.phone == "+15551234567"
        assert stats.count("actions-personas-messaging-twilio.subscribed") == 1

    def test_to_number_overrides_external_id(self, stats: MockStatsClient):
        result = _evaluator(stats).evaluate(make_payload(toNumber="+15550000000"), "sms")
        assert result.phone == "+15550000000"

    def test_no_phone_downgrades(self, stats: MockStatsClient):
        result = _evaluator(stats).evaluate(make_payload(phone=None), "sms")
        assert result.status == SendabilityStatus.NO_SENDER_PHONE
        assert result.phone is None

    def test_channel_type_is_case_insensitive(self, stats: MockStatsClient):
        result = _evaluator(stats).evaluate(make_payload(channel_type="WhatsApp"), "whatsapp")
        assert result.status == SendabilityStatus.SHOULD_SEND


class TestInvalidStatus:
    def test_unknown_status_raises_400(self, stats: MockStatsClient):
        with pytest.raises(ValidationError) as excinfo:
            _evaluator(stats).evaluate(make_payload(status="pending"), "sms")
        assert excinfo.value.status == 400
        assert excinfo.value.code == SendabilityStatus.INVALID_SUBSCRIPTION_STATUS.value
        assert '"pending"' in str(excinfo.value)
        assert stats.names() == ["actions-personas-messaging-twilio.error"]

    def test_custom_status_sets(self, stats: MockStatsClient):
        evaluator = SendabilityEvaluator(stats, sendable_statuses={"opted-in"}, non_sendable_statuses={"opted-out"})
        assert evaluator.evaluate(make_payload(status="opted-in"), "sms").should_send
        with pytest.raises(ValidationError):
            evaluator.evaluate(make_payload(status="subscribed"), "sms")


class TestFindExternalId:
    def test_skips_non_phone_types(self):
        payload = make_payload(external_ids=[
            {"type": "email", "id": "a@b.c", "channelType": "sms", "subscriptionStatus": "subscribed"},
            {"type": "phone", "id": "+1555", "channelType": "sms", "subscriptionStatus": "true"},
        ])
        external_id = find_external_id(payload.external_ids, "sms")
        assert external_id is not None
        assert external_id.id == "+1555"

    def test_first_match_wins(self):
        payload = make_payload(external_ids=[
            {"type": "phone", "id": "+1", "channelType": "sms", "subscriptionStatus": "false"},
            {"type": "phone", "id": "+2", "channelType": "sms", "subscriptionStatus": "true"},
        ])
        assert find_external_id(payload.external_ids, "sms").id == "+1"
