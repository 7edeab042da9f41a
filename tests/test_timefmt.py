"""TeamCity 타임스탬프/경과 시간 포매팅 테스트."""

from __future__ import annotations

from datetime import timedelta

import pytest
from teamcity_bridge.timefmt import (
    INVALID_DATE,
    duration,
    format_elapsed,
    format_estimated_remaining,
    format_teamcity_timestamp,
    parse_teamcity_timestamp,
)


class TestParseTimestamp:
    def test_valid_negative_offset(self) -> None:
        parsed = parse_teamcity_timestamp("20250812T000012-0300")

        assert parsed is not None
        assert (parsed.year, parsed.month, parsed.day) == (2025, 8, 12)
        assert (parsed.hour, parsed.minute, parsed.second) == (0, 0, 12)
        assert parsed.utcoffset() == timedelta(hours=-3)

    def test_valid_positive_offset(self) -> None:
        parsed = parse_teamcity_timestamp("20240229T235959+0930")
        assert parsed is not None
        assert parsed.utcoffset() == timedelta(hours=9, minutes=30)

    @pytest.mark.parametrize("value", [
        "2025-08-12T00:00:12-03:00",
        "20250812T000012",
        "20250812T000012-030",
        "20251312T000012+0000",
        "20250230T000012+0000",
        "20250812T240000+0000",
        "20250812T006000+0000",
        "20250812T000060+0000",
        "20250812T000012+2500",
        "",
        None,
        20250812,
    ])
    def test_invalid(self, value) -> None:
        assert parse_teamcity_timestamp(value) is None


class TestFormatTimestamp:
    def test_human_format_keeps_offset(self) -> None:
        assert format_teamcity_timestamp("20250812T000012-0300") == (
            "Aug 12, 2025, 00:00:12 UTC-03:00"
        )

    def test_utc(self) -> None:
        assert format_teamcity_timestamp("20250101T093005+0000") == "Jan 1, 2025, 09:30:05 UTC"

    def test_invalid(self) -> None:
        assert format_teamcity_timestamp("not a date") == INVALID_DATE


class TestFormatElapsed:
    @pytest.mark.parametrize(("seconds", "expected"), [
        (0, "0s"),
        (59, "59s"),
        (60, "1m"),
        (3661, "1h 1m 1s"),
        (7200, "2h"),
        (3605, "1h 5s"),
        (45.9, "45s"),
        (-5, "0s"),
    ])
    def test_format(self, seconds: float, expected: str) -> None:
        assert format_elapsed(seconds) == expected


class TestEstimatedRemaining:
    def test_remaining(self) -> None:
        assert format_estimated_remaining(0, 586) == "9m 46s"

    def test_unknown_when_no_estimate(self) -> None:
        assert format_estimated_remaining(10, 0) == "Unknown"

    def test_completing_when_over_estimate(self) -> None:
        assert format_estimated_remaining(600, 586) == "Completing..."


class TestDuration:
    def test_build_duration(self) -> None:
        assert duration("20250812T000012-0300", "20250812T003411-0300") == "33m 59s"

    def test_across_offsets(self) -> None:
        # 같은 순간을 다른 오프셋으로 표현
        assert duration("20250812T000000-0300", "20250812T040000+0100") == "0s"

    def test_end_before_start(self) -> None:
        assert duration("20250812T010000+0000", "20250812T000000+0000") == "0s"

    def test_unparseable(self) -> None:
        assert duration("20250812T000012-0300", "garbage") is None
        assert duration(None, "20250812T003411-0300") is None
