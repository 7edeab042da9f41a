"""TeamCity 빌드 이벤트 전용 카드 포매터와 이벤트 종류별 디스패치.

- BUILD_STARTED: 파란색, 진행률/예상 잔여 시간
- BUILD_FINISHED: 성공 초록/실패 빨강, 소요 시간/변경 내역
- BUILD_INTERRUPTED: 주황색, 취소 사유/취소자/경과 시간

create_build_card가 None을 반환하면 호출 측은 범용 카드로 대체한다.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from teamcity_bridge.card import VisualCard
from teamcity_bridge.models import (
    BuildEvent,
    BuildPayload,
    EventKind,
    has_agent,
    has_canceled_info,
    has_last_changes,
    has_running_info,
    raw_event_kind,
)
from teamcity_bridge.text import (
    format_field_name,
    format_field_value,
    format_footer,
    format_title,
    validate_url,
)
from teamcity_bridge.timefmt import (
    INVALID_DATE,
    duration,
    format_elapsed,
    format_estimated_remaining,
    format_teamcity_timestamp,
)
from teamcity_bridge.validation import sanitize_build_event

logger = logging.getLogger(__name__)

STARTED_COLOR = 0x3498DB
SUCCESS_COLOR = 0x27AE60
FAILURE_COLOR = 0xE74C3C
INTERRUPTED_COLOR = 0xF39C12
BUILD_FOOTER = "TeamCity Build Notification"


def _safe_timestamp(value: str | None) -> str | None:
    """포매팅된 타임스탬프. 파싱에 실패하면 None."""
    if not value:
        return None
    formatted = format_teamcity_timestamp(value)
    return formatted if formatted != INVALID_DATE else None


def _add(card: VisualCard, name: str, value: str, *, inline: bool) -> None:
    card.add_field(format_field_name(name), format_field_value(value), inline=inline)


def _new_card(title: str, color: int) -> VisualCard:
    return VisualCard(title=format_title(title), color=color, footer=format_footer(BUILD_FOOTER))


def _add_build_header(card: VisualCard, payload: BuildPayload, status_name: str, status: str) -> None:
    """Project / Build Type / Build Number / 상태 / Agent 공통 필드."""
    _add(card, "Project", payload.build_type.project_name, inline=True)
    _add(card, "Build Type", payload.build_type.name, inline=True)
    _add(card, "Build Number", f"#{payload.number}", inline=True)
    _add(card, status_name, status, inline=True)
    if has_agent(payload):
        _add(card, "Agent", payload.agent.name, inline=True)


def _add_build_link(card: VisualCard, payload: BuildPayload) -> None:
    url = validate_url(payload.web_url)
    if url:
        _add(card, "TeamCity Link", f"[View Build]({url})", inline=False)


def _add_current_stage(card: VisualCard, payload: BuildPayload) -> None:
    stage = payload.running_info.current_stage_text if payload.running_info else None
    if stage and stage.strip():
        _add(card, "Current Stage", stage, inline=False)


def build_started_card(event: BuildEvent) -> VisualCard:
    """BUILD_STARTED 카드: 진행률, 예상 잔여 시간, 현재 단계."""
    payload = event.payload
    card = _new_card(f"🚀 Build Started: {payload.build_type.name}", STARTED_COLOR)
    _add_build_header(card, payload, "Status", payload.status_text or payload.state)

    if has_running_info(payload):
        info = payload.running_info
        _add(card, "Progress", f"{info.percentage_complete}%", inline=True)
        _add(
            card, "Est. Time Remaining",
            format_estimated_remaining(info.elapsed_seconds, info.estimated_total_seconds),
            inline=True,
        )
        _add_current_stage(card, payload)

    started_at = _safe_timestamp(payload.start_date)
    if started_at:
        _add(card, "Started At", started_at, inline=True)

    _add_build_link(card, payload)
    return card


def build_finished_card(event: BuildEvent) -> VisualCard:
    """BUILD_FINISHED 카드: 결과 색상, 소요 시간, 마지막 변경."""
    payload = event.payload
    success = payload.status == "SUCCESS"
    icon = "✅" if success else "❌"
    card = _new_card(
        f"{icon} Build Finished: {payload.build_type.name}",
        SUCCESS_COLOR if success else FAILURE_COLOR,
    )
    _add_build_header(card, payload, "Final Status", payload.status_text or payload.status)

    if payload.start_date and payload.finish_date:
        elapsed = duration(payload.start_date, payload.finish_date)
        if elapsed:
            _add(card, "Build Duration", elapsed, inline=True)

    finished_at = _safe_timestamp(payload.finish_date)
    if finished_at:
        _add(card, "Finished At", finished_at, inline=True)

    if has_last_changes(payload):
        changes = payload.last_changes
        latest = changes.change[0] if changes.change else None
        if changes.count == 1 and latest is not None:
            changed_at = _safe_timestamp(latest.date)
            info = f"{latest.username} ({changed_at})" if changed_at else latest.username
            _add(card, "Last Change", info, inline=False)
        elif changes.count > 1:
            info = f"{changes.count} changes"
            if latest is not None:
                info += f", latest by {latest.username}"
            _add(card, "Changes", info, inline=False)

    _add_build_link(card, payload)
    return card


def build_interrupted_card(event: BuildEvent) -> VisualCard:
    """BUILD_INTERRUPTED 카드: 취소 사유/취소자/취소 시각, 중단 전 경과 시간."""
    payload = event.payload
    card = _new_card(f"⚠️ Build Interrupted: {payload.build_type.name}", INTERRUPTED_COLOR)
    _add_build_header(card, payload, "Status", payload.status_text or payload.status)

    canceled = payload.canceled_info
    if has_canceled_info(payload):
        reason = canceled.text.strip()
        if reason:
            _add(card, "Cancellation Reason", reason, inline=False)

        canceled_by = canceled.user.username if canceled.user else ""
        _add(card, "Canceled By", canceled_by or "Unknown", inline=True)

        canceled_at = _safe_timestamp(canceled.timestamp)
        if canceled_at:
            _add(card, "Canceled At", canceled_at, inline=True)

    elapsed: str | None = None
    if has_running_info(payload):
        elapsed = format_elapsed(payload.running_info.elapsed_seconds)
    elif has_canceled_info(payload):
        elapsed = duration(payload.start_date, canceled.timestamp)
    if elapsed:
        _add(card, "Elapsed Time", elapsed, inline=True)

    _add_current_stage(card, payload)

    # STARTED와 달리 파싱 실패 시에도 "Invalid date"를 그대로 표시한다.
    if payload.start_date:
        _add(card, "Started At", format_teamcity_timestamp(payload.start_date), inline=True)

    _add_build_link(card, payload)
    return card


_FORMATTERS: dict[str, Callable[[BuildEvent], VisualCard]] = {
    EventKind.BUILD_STARTED: build_started_card,
    EventKind.BUILD_FINISHED: build_finished_card,
    EventKind.BUILD_INTERRUPTED: build_interrupted_card,
}


def _has_required_structure(event: Any) -> bool:
    if isinstance(event, BuildEvent):
        return bool(event.payload.build_type.name and event.payload.build_type.project_name)

    if not isinstance(event, dict) or not raw_event_kind(event) or not event.get("payload"):
        logger.error(
            "Invalid TeamCity event structure",
            extra={"event_code": "DISPATCH_REJECTED", "event_kind": raw_event_kind(event)},
        )
        return False

    payload = event["payload"]
    build_type = payload.get("buildType") if isinstance(payload, dict) else None
    if (
        not isinstance(build_type, dict)
        or not build_type.get("name")
        or not build_type.get("projectName")
    ):
        logger.error(
            "Missing required buildType information",
            extra={"event_code": "DISPATCH_REJECTED", "event_kind": raw_event_kind(event)},
        )
        return False
    return True


def create_build_card(event: Any) -> VisualCard | None:
    """이벤트 종류에 맞는 전용 카드를 만든다.

    Args:
        event: 원본 웹훅 dict 또는 sanitize된 BuildEvent

    Returns:
        전용 카드. 구조가 부족하거나, 지원하지 않는 종류이거나,
        포매터에서 예외가 나면 None (범용 카드로 대체하라는 신호)
    """
    try:
        if event is None or not _has_required_structure(event):
            return None

        build_event = event if isinstance(event, BuildEvent) else sanitize_build_event(event)
        formatter = _FORMATTERS.get(build_event.event_kind)
        if formatter is None:
            logger.info(
                "Unknown TeamCity event type: %s", build_event.event_kind,
                extra={"event_code": "DISPATCH_NO_MATCH", "event_kind": build_event.event_kind},
            )
            return None

        logger.info(
            "Creating %s card", build_event.event_kind,
            extra={"event_code": "DISPATCH_MATCH", "event_kind": build_event.event_kind,
                   "build_id": build_event.payload.id},
        )
        return formatter(build_event)

    except Exception as e:
        logger.error(
            "Error creating TeamCity card: %s", e,
            extra={"event_code": "DISPATCH_ERROR", "event_kind": raw_event_kind(event)},
        )
        return None
