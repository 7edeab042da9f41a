"""임의 웹훅 페이로드 → 범용 카드 변환기.

알 수 없는 이벤트나 전용 포매터가 실패한 이벤트를 위한 best-effort 렌더러.
- 재귀 깊이 2, 필드 최대 20개 (Discord 25개 상한 아래 여유)
- 한 번 방문한 객체는 다시 내려가지 않음 (순환 참조 차단)
- 빌드 식별 필드(id, number, status 등)를 먼저 출력
- 예외가 나도 카드 자체는 항상 반환
"""

from __future__ import annotations

import logging
import re
from typing import Any

from teamcity_bridge.card import VisualCard
from teamcity_bridge.models import raw_event_kind
from teamcity_bridge.text import (
    DISCORD_LIMITS,
    format_field_name,
    format_title,
    sanitize,
    truncate,
    validate_url,
)
from teamcity_bridge.timefmt import TIMESTAMP_PATTERN, format_human, parse_teamcity_timestamp

logger = logging.getLogger(__name__)

GENERIC_COLOR = 0x00AE86
GENERIC_FOOTER = "Webhook Notification"

MAX_DEPTH = 2
MAX_GENERIC_FIELDS = 20
MAX_LIST_ITEMS = 5
MAX_SIMPLE_KEYS = 3
INLINE_VALUE_MAX = 50

PRIORITY_KEYS = frozenset({"id", "number", "status", "state", "statusText", "buildType", "agent"})
INLINE_KEYWORDS = ("id", "number", "status", "state", "name", "username", "count")

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_SEPARATORS = re.compile(r"[-_]+")
_WORD_START = re.compile(r"(?:^|(?<=[\s.]))(\w)")

# (경로, 값, inline)
_Field = tuple[tuple[str, ...], str, bool]


# ── 키 이름 휴리스틱 ─────────────────────────────────────


def is_url_key(key: str) -> bool:
    lowered = key.lower()
    return "url" in lowered or "href" in lowered


def is_date_key(key: str) -> bool:
    lowered = key.lower()
    return "date" in lowered or "time" in lowered


def is_inline_key(key: str) -> bool:
    lowered = key.lower()
    return any(word in lowered for word in INLINE_KEYWORDS)


def prettify_key(key: str) -> str:
    """buildTypeId → "Build Type Id", running-info → "Running Info".

    중첩 경로는 점으로 구분된 각 단어도 대문자로 시작한다 (build.agent → "Build.Agent").
    """
    spaced = " ".join(_SEPARATORS.sub(" ", _CAMEL_BOUNDARY.sub(" ", key)).split())
    return _WORD_START.sub(lambda m: m.group(1).upper(), spaced)


# ── 값 포매팅 ──────────────────────────────────────────


def _is_primitive(value: Any) -> bool:
    return value is None or isinstance(value, (str, int, float, bool))


def _is_simple_object(value: dict[str, Any]) -> bool:
    return len(value) <= MAX_SIMPLE_KEYS and all(_is_primitive(v) for v in value.values())


def format_value(key: str, value: Any) -> str:
    """키 이름을 보고 URL/타임스탬프/불리언을 읽기 좋게 변환한다."""
    if isinstance(value, bool):
        return "✅ Yes" if value else "❌ No"
    if not isinstance(value, str):
        return str(value)

    if is_url_key(key):
        url = validate_url(value)
        return f"[Link]({url})" if url else value
    if is_date_key(key) and TIMESTAMP_PATTERN.match(value):
        parsed = parse_teamcity_timestamp(value)
        return format_human(parsed) if parsed else value
    return value


def _format_simple_object(obj: dict[str, Any]) -> str:
    parts = [
        f"{prettify_key(str(k))}: {format_value(str(k), v)}"
        for k, v in obj.items()
        if v is not None
    ]
    return ", ".join(parts) if parts else "Empty"


def _format_list_item(key: str, item: Any) -> str:
    if item is None:
        return "N/A"
    if isinstance(item, dict):
        return _format_simple_object(item) if _is_simple_object(item) else "[Object]"
    if isinstance(item, list):
        return f"[List of {len(item)}]"
    return format_value(key, item)


def _format_list(key: str, items: list[Any]) -> str:
    if not items:
        return "Empty"
    lines = [sanitize(_format_list_item(key, item)) for item in items[:MAX_LIST_ITEMS]]
    if len(items) > MAX_LIST_ITEMS:
        lines.append(f"... and {len(items) - MAX_LIST_ITEMS} more")
    return "\n".join(lines)


def _leaf_field(path: tuple[str, ...], key: str, text: str) -> _Field:
    inline = len(text) <= INLINE_VALUE_MAX and is_inline_key(key)
    return path, sanitize(text), inline


# ── 재귀 순회 ──────────────────────────────────────────


def _ordered_keys(obj: dict[str, Any]) -> list[str]:
    priority = [k for k in obj if k in PRIORITY_KEYS]
    return priority + [k for k in obj if k not in PRIORITY_KEYS]


def _walk(
    obj: dict[str, Any],
    fields: list[_Field],
    path: tuple[str, ...],
    depth: int,
    visited: set[int],
) -> None:
    if depth > MAX_DEPTH or id(obj) in visited:
        return
    visited.add(id(obj))

    for key in _ordered_keys(obj):
        if len(fields) >= MAX_GENERIC_FIELDS:
            return

        value = obj[key]
        if value is None:
            continue

        key = str(key)
        field_path = (*path, key)
        if isinstance(value, dict):
            if _is_simple_object(value):
                fields.append(_leaf_field(field_path, key, _format_simple_object(value)))
            else:
                _walk(value, fields, field_path, depth + 1, visited)
        elif isinstance(value, list):
            fields.append((field_path, _format_list(key, value), False))
        else:
            fields.append(_leaf_field(field_path, key, format_value(key, value)))


def collect_fields(payload: dict[str, Any]) -> list[_Field]:
    """페이로드를 순회해 (경로, 값, inline) 목록을 만든다."""
    fields: list[_Field] = []
    _walk(payload, fields, (), 0, set())
    return fields


def build_generic_card(event: Any) -> VisualCard:
    """어떤 입력이든 표시 가능한 카드를 만든다. 예외를 던지지 않는다."""
    kind = raw_event_kind(event)
    card = VisualCard(
        title=format_title(f"Webhook Event: {kind or 'Unknown'}"),
        color=GENERIC_COLOR,
        footer=GENERIC_FOOTER,
    )

    payload = event.get("payload") if isinstance(event, dict) else None
    if not isinstance(payload, dict):
        card.add_field("Error", "Invalid or missing event data")
        return card

    try:
        fields = collect_fields(payload)
    except Exception as e:
        logger.warning(
            "Generic payload processing failed: %s", e,
            extra={"event_code": "GENERIC_WALK_ERROR", "event_kind": kind},
        )
        fields = [(("Error",), "Failed to process payload data", False)]

    for path, value, inline in fields:
        # 중첩 필드는 parent.key 경로로 이름을 붙인다
        name = format_field_name(prettify_key(".".join(path)))
        card.add_field(name, truncate(value, DISCORD_LIMITS["field_value"]), inline=inline)
    return card
