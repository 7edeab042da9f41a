"""TeamCity 웹훅 수신 서버 (FastAPI).

요청 본문을 카드로 변환해 먼저 응답한 뒤, 백그라운드에서 Discord 채널로 전송한다.
구조가 잘못된 본문도 400을 돌려주되 대체 카드는 전송한다 (알림 누락 방지).
"""

from __future__ import annotations

import logging
import time
from typing import Any, Protocol

import orjson
from fastapi import BackgroundTasks, FastAPI, Request
from fastapi.responses import JSONResponse

from teamcity_bridge.card import VisualCard
from teamcity_bridge.config import AppConfig
from teamcity_bridge.models import raw_event_kind
from teamcity_bridge.processor import render_event
from teamcity_bridge.validation import format_errors_for_display

logger = logging.getLogger(__name__)


class CardSink(Protocol):
    def send_card(self, channel_id: str, card: VisualCard) -> Any: ...


def deliver_card(
    sink: CardSink,
    channel_id: str,
    card: VisualCard,
    *,
    event_kind: Any = None,
    started_at: float | None = None,
) -> bool:
    """카드를 채널로 전송한다. 실패는 로그만 남기고 False 반환."""
    if not channel_id:
        logger.error(
            "Notification channel is not configured",
            extra={"event_code": "CHANNEL_MISSING", "event_kind": event_kind},
        )
        return False

    try:
        sink.send_card(channel_id, card)
    except Exception as e:
        logger.error(
            "Failed to send card to Discord: %s", e,
            extra={"event_code": "SEND_ERROR", "channel_id": channel_id,
                   "event_kind": event_kind},
        )
        return False

    duration_ms = (time.monotonic() - started_at) * 1000 if started_at is not None else None
    logger.info(
        "Card sent to Discord channel",
        extra={"event_code": "CARD_SENT", "channel_id": channel_id,
               "event_kind": event_kind, "duration_ms": duration_ms},
    )
    return True


def create_app(config: AppConfig, sink: CardSink) -> FastAPI:
    """웹훅 수신 FastAPI 앱을 생성한다."""
    app = FastAPI(title="TeamCity Discord Bridge", version="0.1.0")
    channel_id = config.discord.notifications_channel_id

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post(config.webhook.route)
    async def receive_webhook(request: Request, background_tasks: BackgroundTasks) -> JSONResponse:
        started_at = time.monotonic()

        raw = await request.body()
        try:
            body: Any = orjson.loads(raw) if raw else None
        except orjson.JSONDecodeError as e:
            logger.error("Webhook body is not valid JSON: %s", e,
                         extra={"event_code": "INVALID_JSON"})
            body = None

        kind = raw_event_kind(body)
        logger.info(
            "Received webhook event",
            extra={"event_code": "WEBHOOK_RECEIVED", "event_kind": kind},
        )

        result = render_event(body)
        background_tasks.add_task(
            deliver_card, sink, channel_id, result.card,
            event_kind=kind, started_at=started_at,
        )
        logger.info(
            "Webhook event processed",
            extra={"event_code": "WEBHOOK_PROCESSED", "event_kind": kind, "path": result.path,
                   "duration_ms": (time.monotonic() - started_at) * 1000},
        )

        if not result.validation.is_valid:
            details = format_errors_for_display(result.validation)
            logger.error("Basic webhook validation failed: %s", details,
                         extra={"event_code": "VALIDATION_FAILED", "event_kind": kind})
            return JSONResponse(
                status_code=400,
                content={"error": "Invalid webhook structure", "details": details},
            )
        return JSONResponse(status_code=200, content={"status": "ok", "card": result.path})

    return app
