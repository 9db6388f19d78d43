"""Tests for the notification data models."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from travis_webhook import (
    Color,
    Config,
    Payload,
    PayloadDecodeError,
    Repository,
    WebhookRequest,
)

from conftest import PAYLOAD_TEXT

STATUS_PREDICATES = [
    ("Pending", "pending"),
    ("Passed", "passed"),
    ("Fixed", "fixed"),
    ("Broken", "broken"),
    ("Failed", "failed"),
    ("Still Failing", "still_failing"),
    ("Canceled", "canceled"),
    ("Errored", "errored"),
]

TYPE_PREDICATES = [
    ("pull_request", "is_pull_request"),
    ("push", "is_push"),
    ("cron", "is_cron"),
    ("api", "is_api"),
]


class TestStatusPredicates:
    """Tests for the build status predicates."""

    def test_passed_is_the_only_true_predicate(self):
        """Payload(status_message="Passed") only passes."""
        payload = Payload(status_message="Passed")
        assert payload.passed() is True
        for _, name in STATUS_PREDICATES:
            if name != "passed":
                assert getattr(payload, name)() is False, name

    @pytest.mark.parametrize("message,name", STATUS_PREDICATES)
    def test_status_message_matches(self, message, name):
        """Each predicate matches its status_message."""
        assert getattr(Payload(status_message=message), name)() is True

    @pytest.mark.parametrize("message,name", STATUS_PREDICATES)
    def test_result_message_matches(self, message, name):
        """Each predicate also matches the legacy result_message."""
        assert getattr(Payload(result_message=message), name)() is True

    def test_case_sensitive(self):
        """No normalization is applied."""
        assert Payload(status_message="passed").passed() is False
        assert Payload(status_message="Still failing").still_failing() is False

    def test_empty_payload(self):
        """An empty payload matches nothing."""
        payload = Payload()
        assert not any(getattr(payload, name)() for _, name in STATUS_PREDICATES)
        assert not any(getattr(payload, name)() for _, name in TYPE_PREDICATES)


class TestTypePredicates:
    """Tests for the event type predicates."""

    def test_cron_is_the_only_true_predicate(self):
        """Payload(type="cron") is only a cron event."""
        payload = Payload(type="cron")
        assert payload.is_cron() is True
        assert payload.is_push() is False
        assert payload.is_api() is False
        assert payload.is_pull_request() is False

    @pytest.mark.parametrize("event_type,name", TYPE_PREDICATES)
    def test_type_matches(self, event_type, name):
        """Each predicate matches its event type."""
        assert getattr(Payload(type=event_type), name)() is True

    def test_type_is_case_sensitive(self):
        """Event types are compared literally."""
        assert Payload(type="API").is_api() is False


class TestColor:
    """Tests for the Color enumeration."""

    def test_values(self):
        """Colors are the RGB values of the Travis CI UI."""
        assert Color.PASSED == 3779158
        assert Color.FAIL == 14370117
        assert Color.IN_PROGRESS == 15588927
        assert Color.CANCEL == 10329501

    def test_is_int(self):
        """Colors can be used wherever an int is expected."""
        assert f"#{Color.PASSED:06X}" == "#39AA56"


class TestPayloadFromDict:
    """Tests for Payload.from_dict and to_dict."""

    def test_full_notification(self):
        """Every field of a real notification is mapped."""
        payload = Payload.from_dict(json.loads(PAYLOAD_TEXT))

        assert payload.id == 1234567
        assert payload.number == "42"
        assert payload.config == Config(sudo=False, dist="trusty", language="go")
        assert payload.repository == Repository(
            id=987654,
            name="hello",
            owner_name="octo",
            url="https://github.com/octo/hello",
        )
        assert payload.started_at == datetime(2017, 3, 7, 19, 51, 46, tzinfo=timezone.utc)
        assert payload.commiter_name == "Octo Cat"
        assert payload.is_push()
        assert payload.passed()

    def test_round_trip(self):
        """to_dict re-encodes every populated field."""
        data = json.loads(PAYLOAD_TEXT)
        assert Payload.from_dict(data).to_dict() == data

    def test_absent_fields_are_none(self):
        """Missing fields stay None and are not re-encoded."""
        payload = Payload.from_dict({"id": 1})
        assert payload.config is None
        assert payload.repository is None
        assert payload.to_dict() == {"id": 1}

    def test_unknown_keys_ignored(self):
        """Fields Travis CI adds later do not break decoding."""
        payload = Payload.from_dict({"id": 1, "matrix": [{"id": 2}]})
        assert payload.id == 1

    def test_nested_objects_not_aliased(self):
        """Each decode builds fresh nested objects."""
        data = {"config": {"language": "python"}, "repository": {"id": 1}}
        first = Payload.from_dict(data)
        second = Payload.from_dict(data)
        assert first.config == second.config
        assert first.config is not second.config
        assert first.repository is not second.repository

    @pytest.mark.parametrize("data", [
        {"id": "1234"},
        {"id": True},
        {"duration": 1.5},
        {"number": 42},
        {"config": "trusty"},
        {"config": {"sudo": "yes"}},
        {"repository": {"id": "x"}},
        {"started_at": "yesterday"},
        {"started_at": "2017-03-07"},
        {"started_at": "2017-03-07T19:51:46"},
        {"started_at": "2017-02-30T19:51:46Z"},
        {"started_at": "2017-03-07T19:51:46+24:00"},
    ])
    def test_type_mismatch(self, data):
        """Wrongly typed fields are decode errors."""
        with pytest.raises(PayloadDecodeError, match="cannot decode payload"):
            Payload.from_dict(data)


class TestTimestamps:
    """Tests for RFC 3339 timestamp fields."""

    @pytest.mark.parametrize("value", [
        "2017-03-07T19:51:46Z",
        "2017-03-07T19:51:46.5Z",
        "2017-03-07T19:51:46.123456Z",
        "2017-03-07T19:51:46+02:00",
        "2017-03-07T19:51:46.25-05:30",
    ])
    def test_round_trip(self, value):
        """Timestamps re-encode to the text they were decoded from."""
        assert Payload.from_dict({"started_at": value}).to_dict() == {"started_at": value}

    def test_fraction_precision(self):
        """Fractions are kept to the microsecond."""
        payload = Payload.from_dict({"finished_at": "2017-03-07T19:52:32.5Z"})
        assert payload.finished_at == datetime(2017, 3, 7, 19, 52, 32, 500000, tzinfo=timezone.utc)

    def test_offset_kept(self):
        """Non-UTC offsets are preserved."""
        payload = Payload.from_dict({"commited_at": "2017-03-07T21:50:39+02:00"})
        assert payload.commited_at.utcoffset() == timedelta(hours=2)
        assert payload.commited_at == datetime(2017, 3, 7, 19, 50, 39, tzinfo=timezone.utc)

    def test_nanoseconds_truncated(self):
        """Digits beyond microseconds are dropped."""
        payload = Payload.from_dict({"started_at": "2017-03-07T19:51:46.123456789Z"})
        assert payload.started_at.microsecond == 123456
        assert payload.to_dict() == {"started_at": "2017-03-07T19:51:46.123456Z"}

    def test_trailing_zeros_trimmed(self):
        """Trailing fraction zeros are not re-encoded."""
        payload = Payload.from_dict({"started_at": "2017-03-07T19:51:46.500Z"})
        assert payload.to_dict() == {"started_at": "2017-03-07T19:51:46.5Z"}


class TestWebhookRequest:
    """Tests for WebhookRequest helpers."""

    def test_header_case_insensitive(self):
        """Headers are looked up case-insensitively."""
        request = WebhookRequest(method="POST", headers={"SIGNATURE": "abc"})
        assert request.header("Signature") == "abc"
        assert request.header("Content-Type") == ""

    def test_form_value(self):
        """The first value of a form field is returned decoded."""
        request = WebhookRequest(
            method="POST",
            body=b"payload=%7B%22id%22%3A+1%7D&payload=second",
        )
        assert request.form_value("payload") == '{"id": 1}'

    def test_form_value_missing(self):
        """A missing field reads as an empty string."""
        request = WebhookRequest(method="POST", body="other=1")
        assert request.form_value("payload") == ""

    def test_form_bytes_exact(self):
        """Percent-encoded bytes come back unchanged, even if not UTF-8."""
        request = WebhookRequest(
            method="POST",
            body=b"payload=%7B%22m%22%3A+%22%C3%A9%FF%22%7D",
        )
        assert request.form_bytes("payload") == b'{"m": "\xc3\xa9\xff"}'
        assert request.form_value("payload") == '{"m": "\u00e9\ufffd"}'

    def test_form_bytes_missing(self):
        """A missing field reads as empty bytes."""
        request = WebhookRequest(method="POST", body=b"other=1")
        assert request.form_bytes("payload") == b""
