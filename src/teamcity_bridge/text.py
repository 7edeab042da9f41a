"""Discord 임베드용 텍스트 정리/길이 제한 유틸리티.

- 제어 문자 제거, 공백 정규화
- 임베드 항목별 길이 제한(title/description/field/footer) 적용
- URL 검증, Discord 마크다운 이스케이프
"""

from __future__ import annotations

import re
from typing import Any
from urllib.parse import urlsplit

# Discord 임베드 제한
DISCORD_LIMITS: dict[str, int] = {
    "title": 256,
    "description": 4096,
    "field_name": 256,
    "field_value": 1024,
    "footer": 2048,
    "author_name": 256,
    "total": 6000,
}
MAX_FIELDS = 25

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_WHITESPACE_RUN = re.compile(r"\s+")
_MARKUP_CHARS = re.compile(r"([*_`~|\\])")


def truncate(text: Any, max_length: int, suffix: str = "...") -> str:
    """max_length를 넘으면 잘라내고 suffix를 붙인다. 문자열이 아니면 빈 문자열."""
    if not isinstance(text, str) or not text:
        return ""
    if len(text) <= max_length:
        return text
    keep = max(0, max_length - len(suffix))
    # max_length가 suffix보다 짧으면 suffix도 잘린다
    return (text[:keep] + suffix)[:max_length]


def sanitize(text: Any) -> str:
    """제어 문자를 공백으로 바꾸고 연속 공백을 하나로 줄인 뒤 trim."""
    if not isinstance(text, str) or not text:
        return ""
    text = _CONTROL_CHARS.sub(" ", text)
    return _WHITESPACE_RUN.sub(" ", text).strip()


def format_for_field(text: Any, limit_kind: str) -> str:
    """sanitize 후 limit_kind 제한 길이로 truncate."""
    return truncate(sanitize(text), DISCORD_LIMITS[limit_kind])


def format_title(text: Any) -> str:
    return format_for_field(text, "title")


def format_description(text: Any) -> str:
    return format_for_field(text, "description")


def format_field_name(text: Any) -> str:
    return format_for_field(text, "field_name")


def format_field_value(text: Any) -> str:
    return format_for_field(text, "field_value")


def format_footer(text: Any) -> str:
    return format_for_field(text, "footer")


def validate_url(url: Any) -> str:
    """임베드에 넣어도 안전한 URL을 반환한다.

    http(s)로 시작하지 않으면 상대 경로로 보고 그대로 반환하고,
    절대 URL은 파싱에 실패하면 빈 문자열을 반환한다.
    """
    if not isinstance(url, str) or not url:
        return ""

    trimmed = url.strip()
    if not trimmed.startswith(("http://", "https://")):
        return trimmed

    if any(ch.isspace() for ch in trimmed):
        return ""
    try:
        parts = urlsplit(trimmed)
        _ = parts.port  # 잘못된 포트는 여기서 ValueError
    except ValueError:
        return ""
    if not parts.hostname:
        return ""
    return trimmed


def escape_markup(text: Any) -> str:
    """Discord 마크다운 문자(* _ ` ~ | \\)를 이스케이프하고 공백을 정리한다."""
    if not isinstance(text, str) or not text:
        return ""
    return sanitize(_MARKUP_CHARS.sub(r"\\\1", text))
