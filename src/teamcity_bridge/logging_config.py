"""JSON 구조화 로깅 설정.

웹훅 한 건의 흐름(수신 → 검증 → 카드 생성 → 전송)을 event_code로 추적한다.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any

# extra로 전달되는 구조화 필드
_EXTRA_KEYS = (
    "event_code", "event_kind", "build_id", "channel_id",
    "duration_ms", "status_code", "retry_after", "path",
)

_TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class JsonFormatter(logging.Formatter):
    """JSON 형태로 로그 레코드를 포매팅한다."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.now(tz=UTC).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _EXTRA_KEYS:
            value = getattr(record, key, None)
            if value is not None:
                log_entry[key] = value
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        # event_kind 등에 임의 타입이 섞일 수 있어 default=str
        return json.dumps(log_entry, ensure_ascii=False, default=str)


def setup_logging(*, json_format: bool = True, level: int = logging.INFO) -> None:
    """teamcity_bridge 패키지 로거에 핸들러를 설정한다.

    Args:
        json_format: True이면 JSON 포맷, False이면 사람이 읽는 텍스트 포맷
        level: 로그 레벨
    """
    logger = logging.getLogger("teamcity_bridge")
    logger.setLevel(level)
    logger.handlers.clear()

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(JsonFormatter() if json_format else logging.Formatter(_TEXT_FORMAT))
    logger.addHandler(handler)
