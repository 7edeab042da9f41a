"""웹훅 본문 → 카드 변환 파이프라인.

검증 → (빌드 이벤트면) 전용 카드 → 범용 카드 → 최소 대체 카드 → 에러 카드 순으로
충실도를 낮춰 가며, 어떤 입력이든 반드시 카드 하나를 만든다.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Literal

from teamcity_bridge.card import VisualCard, build_error_card, build_fallback_card
from teamcity_bridge.embeds import create_build_card
from teamcity_bridge.generic import build_generic_card
from teamcity_bridge.models import looks_like_build_event, raw_event_kind
from teamcity_bridge.validation import (
    ValidationResult,
    format_errors_for_display,
    sanitize_build_event,
    validate_build_event,
    validate_generic,
)

logger = logging.getLogger(__name__)

CardPath = Literal["specialized", "generic", "fallback", "error"]


@dataclass
class ProcessResult:
    """처리 결과: 전송할 카드, 공통 구조 검증 결과, 카드를 만든 단계."""

    card: VisualCard
    validation: ValidationResult
    path: CardPath


def _build_card(body: Any) -> tuple[VisualCard | None, CardPath]:
    kind = raw_event_kind(body)

    if looks_like_build_event(body):
        build_validation = validate_build_event(body)
        if build_validation.is_valid:
            if build_validation.warnings:
                logger.warning(
                    "TeamCity validation warnings: %s", build_validation.warnings,
                    extra={"event_code": "VALIDATION_WARNING", "event_kind": kind},
                )
            card = create_build_card(body)
        else:
            logger.error(
                "TeamCity validation failed: %s", format_errors_for_display(build_validation),
                extra={"event_code": "VALIDATION_FAILED", "event_kind": kind},
            )
            try:
                sanitized = sanitize_build_event(body)
            except Exception as e:
                logger.error(
                    "Failed to sanitize TeamCity event: %s", e,
                    extra={"event_code": "SANITIZE_ERROR", "event_kind": kind},
                )
                sanitized = None
            card = create_build_card(sanitized)

        if card is not None:
            return card, "specialized"
        logger.info(
            "Specialized card creation failed, falling back to generic card",
            extra={"event_code": "GENERIC_FALLBACK", "event_kind": kind},
        )

    return build_generic_card(body), "generic"


def render_event(body: Any) -> ProcessResult:
    """웹훅 본문 하나를 카드 하나로 변환한다. 예외를 던지지 않는다."""
    kind = raw_event_kind(body)
    validation = validate_generic(body)

    try:
        card, path = _build_card(body)
        if card is None:
            logger.error(
                "Failed to create any card, creating minimal fallback",
                extra={"event_code": "MINIMAL_FALLBACK", "event_kind": kind},
            )
            card, path = build_fallback_card(kind), "fallback"
    except Exception as e:
        logger.error(
            "Error processing webhook event: %s", e,
            extra={"event_code": "PROCESS_ERROR", "event_kind": kind},
        )
        card, path = build_error_card(kind), "error"

    return ProcessResult(card=card, validation=validation, path=path)
