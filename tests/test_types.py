"""Tests for core types."""

import pytest

from engage_messaging import ContentTemplate, ExternalId, MessagePayload, SendabilityResult, SendabilityStatus, Settings


class TestSendabilityResult:
    def test_should_send_requires_phone(self):
        with pytest.raises(ValueError):
            SendabilityResult(SendabilityStatus.SHOULD_SEND)

    def test_other_statuses_reject_phone(self):
        with pytest.raises(ValueError):
            SendabilityResult(SendabilityStatus.DO_NOT_SEND, phone="+15551234567")

    def test_should_send_property(self):
        assert SendabilityResult(SendabilityStatus.SHOULD_SEND, phone="+1555").should_send
        assert not SendabilityResult(SendabilityStatus.NO_SENDER_PHONE).should_send

    def test_status_is_string_enum(self):
        assert SendabilityStatus.SEND_DISABLED == "send_disabled"


class TestMessagePayload:
    def test_from_dict_maps_camel_case(self):
        payload = MessagePayload.from_dict({
            "externalIds": [
                {"type": "phone", "id": "+1555", "channelType": "SMS", "subscriptionStatus": "subscribed"}
            ],
            "toNumber": "+1666",
            "from": "+1777",
            "contentSid": "HX123",
            "customArgs": {"foo": "bar"},
            "send": True,
            "traits": {"first_name": "Ada"},
            "eventOccurredTS": "2024-01-01T00:00:00Z",
            "userId": "user-1",
        })
        assert payload.external_ids == [
            ExternalId(type="phone", id="+1555", channel_type="SMS", subscription_status="subscribed")
        ]
        assert payload.to_number == "+1666"
        assert payload.from_ == "+1777"
        assert payload.content_sid == "HX123"
        assert payload.custom_args == {"foo": "bar"}
        assert payload.send is True
        assert payload.traits == {"first_name": "Ada"}
        assert payload.event_occurred_ts == "2024-01-01T00:00:00Z"
        assert payload.user_id == "user-1"

    def test_from_dict_defaults(self):
        payload = MessagePayload.from_dict({})
        assert payload.external_ids == []
        assert payload.send is False
        assert payload.custom_args == {}

    @pytest.mark.parametrize("flag", ["false", "False", "0", "", "no"])
    def test_from_dict_string_send_flag_is_falsy(self, flag):
        assert MessagePayload.from_dict({"send": flag}).send is False

    @pytest.mark.parametrize("flag", [True, 1, "true", "1"])
    def test_from_dict_send_flag_truthy(self, flag):
        assert MessagePayload.from_dict({"send": flag}).send is True


class TestSettings:
    def test_from_dict(self):
        settings = Settings.from_dict({
            "twilioAccountSID": "AC1",
            "twilioApiKeySID": "SK1",
            "twilioApiKeySecret": "s",
            "webhookUrl": "https://cb.example/hook",
            "spaceId": "spa_1",
        })
        assert settings.twilio_account_sid == "AC1"
        assert settings.webhook_url == "https://cb.example/hook"
        assert settings.content_hostname == "content.twilio.com"
        assert settings.twilio_hostname is None

    def test_missing_credentials_raise(self):
        with pytest.raises(KeyError):
            Settings.from_dict({"spaceId": "spa_1"})


class TestContentTemplate:
    def test_from_dict_basic(self):
        template = ContentTemplate.from_dict({
            "sid": "HX123",
            "friendly_name": "welcome",
            "types": {"twilio/text": {"body": "Hi"}},
        })
        assert template.sid == "HX123"
        assert template.types == {"twilio/text": {"body": "Hi"}}

    def test_from_dict_missing_fields(self):
        template = ContentTemplate.from_dict({})
        assert template.sid == ""
        assert template.types is None
