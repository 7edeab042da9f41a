"""TeamCity 타임스탬프 파싱 및 경과 시간 포매팅.

TeamCity 포맷: YYYYMMDDTHHMMSS±HHMM (예: 20250812T000012-0300)
"""

from __future__ import annotations

import math
import re
from datetime import datetime, timedelta, timezone
from typing import Any

TIMESTAMP_PATTERN = re.compile(
    r"^(\d{4})(\d{2})(\d{2})T(\d{2})(\d{2})(\d{2})([+-])(\d{2})(\d{2})$",
    re.ASCII,
)
INVALID_DATE = "Invalid date"

_MONTH_ABBR = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


def parse_teamcity_timestamp(value: Any) -> datetime | None:
    """TeamCity 타임스탬프 → timezone-aware datetime. 형식/범위 오류면 None."""
    if not isinstance(value, str):
        return None

    match = TIMESTAMP_PATTERN.match(value)
    if not match:
        return None

    year, month, day, hour, minute, second = (int(g) for g in match.groups()[:6])
    sign, tz_hours, tz_minutes = match.group(7), int(match.group(8)), int(match.group(9))

    if not (1 <= month <= 12 and 1 <= day <= 31) or hour > 23 or minute > 59 or second > 59:
        return None

    offset = timedelta(hours=tz_hours, minutes=tz_minutes)
    if sign == "-":
        offset = -offset

    try:
        parsed = datetime(
            year, month, day, hour, minute, second,
            tzinfo=timezone(offset),
        )
    except ValueError:
        # 2월 30일 같은 존재하지 않는 날짜, 24시간 이상 오프셋
        return None

    if (parsed.year, parsed.month, parsed.day) != (year, month, day):
        return None
    return parsed


def format_human(value: datetime) -> str:
    """예: "Aug 12, 2025, 00:00:12 UTC-03:00" (타임스탬프 자체 오프셋 기준)."""
    tz_name = value.tzname() or "UTC"
    return (
        f"{_MONTH_ABBR[value.month - 1]} {value.day}, {value.year}, "
        f"{value:%H:%M:%S} {tz_name}"
    )


def format_teamcity_timestamp(value: Any) -> str:
    parsed = parse_teamcity_timestamp(value)
    return format_human(parsed) if parsed else INVALID_DATE


def format_elapsed(seconds: float) -> str:
    """초 → "1h 1m 1s" 형태. 음수는 "0s"."""
    if seconds < 0:
        return "0s"

    total = math.floor(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)

    parts: list[str] = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    if secs > 0 or not parts:
        parts.append(f"{secs}s")
    return " ".join(parts)


def format_estimated_remaining(elapsed_seconds: float, estimated_total_seconds: float) -> str:
    """예상 잔여 시간. 추정치가 없으면 "Unknown", 초과했으면 "Completing..."."""
    if estimated_total_seconds <= 0 or elapsed_seconds < 0:
        return "Unknown"
    if elapsed_seconds >= estimated_total_seconds:
        return "Completing..."
    return format_elapsed(estimated_total_seconds - elapsed_seconds)


def duration(start: Any, end: Any) -> str | None:
    """두 TeamCity 타임스탬프 사이의 소요 시간. 파싱 실패 시 None.

    end가 start보다 앞서면 "0s"로 처리한다.
    """
    start_dt = parse_teamcity_timestamp(start)
    end_dt = parse_teamcity_timestamp(end)
    if start_dt is None or end_dt is None:
        return None
    return format_elapsed(math.floor((end_dt - start_dt).total_seconds()))
