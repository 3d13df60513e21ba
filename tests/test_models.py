"""Tests for the data models."""

from datetime import datetime, timedelta, timezone

import pytest

from visitprobe.models import AttemptRecord, Observation, Target, Verdict, iso_timestamp, parse_hostname


class TestParseHostname:
    """Tests for parse_hostname."""

    @pytest.mark.parametrize("url, expected", [
        ("https://www.Shop.Example.com/store?x=1", "shop.example.com"),
        ("https://m.shop.example.com:8443/", "m.shop.example.com"),
        ("http://wwwshop.example.com", "wwwshop.example.com"),
        ("not a url", ""),
        ("", ""),
        ("https://[::1", ""),
    ])
    def test_parse(self, url, expected):
        assert parse_hostname(url) == expected


class TestIsoTimestamp:
    """Tests for iso_timestamp."""

    def test_millisecond_utc_format(self):
        """Test the Z-suffixed millisecond format."""
        moment = datetime(2025, 1, 1, 8, 0, 0, 456789, tzinfo=timezone.utc)

        assert iso_timestamp(moment) == "2025-01-01T08:00:00.456Z"

    def test_converts_to_utc(self):
        """Test offsets are normalized to UTC."""
        moment = datetime(2025, 1, 1, 16, 0, tzinfo=timezone(timedelta(hours=8)))

        assert iso_timestamp(moment) == "2025-01-01T08:00:00.000Z"


class TestAttemptRecord:
    """Tests for AttemptRecord."""

    def test_fault_message_wins(self):
        """Test the error of a faulted attempt."""
        record = AttemptRecord(attempt=1, observation=Observation.failed(), fault=TimeoutError())

        assert record.status == 0
        assert record.error == "TimeoutError"

    def test_verdict_diagnostic(self):
        """Test the error of a negative verdict."""
        record = AttemptRecord(
            attempt=2,
            observation=Observation(status=503),
            verdict=Verdict(success=False, diagnostic="Unhealthy: status=503"),
        )

        assert record.status == 503
        assert record.error == "Unhealthy: status=503"


def test_target_from_url_strips_whitespace():
    target = Target.from_url("  https://www.example.com/a  ")

    assert target.url == "https://www.example.com/a"
    assert target.hostname == "example.com"
