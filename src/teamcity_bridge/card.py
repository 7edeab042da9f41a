"""Discord 임베드로 전송되는 시각 카드 모델."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from teamcity_bridge.text import (
    DISCORD_LIMITS,
    MAX_FIELDS,
    format_description,
    format_footer,
    format_title,
    truncate,
)

logger = logging.getLogger(__name__)

FALLBACK_COLOR = 0xFF0000
EMPTY_FIELD_VALUE = "N/A"


@dataclass
class CardField:
    name: str
    value: str
    inline: bool = False


@dataclass
class VisualCard:
    """임베드 카드.

    포매터가 필드를 순서대로 추가한 뒤 통째로 전송 계층에 넘긴다.
    이름/값 길이 제한과 필드 25개 상한은 add_field에서 강제한다.
    """

    title: str
    color: int
    footer: str = ""
    description: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    fields: list[CardField] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.title = truncate(self.title, DISCORD_LIMITS["title"])
        self.footer = truncate(self.footer, DISCORD_LIMITS["footer"])
        self.description = truncate(self.description, DISCORD_LIMITS["description"])

    def add_field(self, name: str, value: str, *, inline: bool = False) -> bool:
        """필드를 추가한다. 상한에 도달해 버려졌으면 False.

        임베드 전체 문자 수(6000)를 넘지 않도록 남은 예산만큼 값을 줄이고,
        "N/A"조차 들어갈 자리가 없으면 필드를 버린다.
        """
        if len(self.fields) >= MAX_FIELDS:
            logger.warning("Card field limit reached, dropping field: %s", name)
            return False

        name = truncate(name, DISCORD_LIMITS["field_name"]) or EMPTY_FIELD_VALUE
        remaining = DISCORD_LIMITS["total"] - self.total_characters() - len(name)
        if remaining < len(EMPTY_FIELD_VALUE):
            logger.warning("Card character budget exhausted, dropping field: %s", name)
            return False

        limit = min(DISCORD_LIMITS["field_value"], remaining)
        self.fields.append(CardField(
            name=name,
            value=truncate(value, limit) or EMPTY_FIELD_VALUE,
            inline=inline,
        ))
        return True

    def total_characters(self) -> int:
        """Discord 임베드 전체 문자 수 (6000자 제한 대상)."""
        return (
            len(self.title) + len(self.description) + len(self.footer)
            + sum(len(f.name) + len(f.value) for f in self.fields)
        )

    def to_embed(self) -> dict[str, Any]:
        """Discord API embed 객체로 변환."""
        embed: dict[str, Any] = {
            "title": self.title,
            "color": self.color,
            "timestamp": self.timestamp.isoformat(),
            "fields": [
                {"name": f.name, "value": f.value, "inline": f.inline}
                for f in self.fields
            ],
        }
        if self.description:
            embed["description"] = self.description
        if self.footer:
            embed["footer"] = {"text": self.footer}
        return embed


def build_fallback_card(event_kind: Any) -> VisualCard:
    """모든 포매터가 실패했을 때 쓰는 최소 카드."""
    kind = event_kind if isinstance(event_kind, str) and event_kind else "Unknown"
    return VisualCard(
        title="Webhook Event Received",
        description=format_description(f"Event Type: {kind}"),
        color=FALLBACK_COLOR,
        footer="Fallback Notification",
    )


def build_error_card(event_kind: Any) -> VisualCard:
    """처리 중 예외가 발생했을 때 보내는 에러 카드."""
    kind = event_kind if isinstance(event_kind, str) and event_kind else "unknown"
    return VisualCard(
        title=format_title("⚠️ Webhook Processing Error"),
        description=format_description(f"Failed to process {kind} event"),
        color=FALLBACK_COLOR,
        footer=format_footer("Error Notification"),
    )
