"""TeamCity 빌드 큐 등록 클라이언트와 결과 카드.

POST <base>/action.html?add2Queue=<buildTypeId>[&name=..&value=..]*
- Bearer 토큰 인증, 10초 타임아웃
- 실패(비 2xx, 타임아웃, 연결 오류)는 예외 대신 QueueResult로 반환
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum

import httpx

from teamcity_bridge.card import VisualCard
from teamcity_bridge.config import TeamCityConfig
from teamcity_bridge.text import format_field_value, format_footer, format_title

logger = logging.getLogger(__name__)

QUEUED_COLOR = 0x27AE60
QUEUE_FAILED_COLOR = 0xE74C3C
COMMAND_FOOTER = "Build Status Command"


class BuildTarget(StrEnum):
    TELLTALE_TOOL = "TELLTALE_TOOL"
    PC_BUILD = "PC_BUILD"
    NX_BUILD = "NX_BUILD"

    @property
    def label(self) -> str:
        return _TARGET_LABELS[self]


_TARGET_LABELS = {
    BuildTarget.TELLTALE_TOOL: "Telltale Tool 🔨",
    BuildTarget.PC_BUILD: "PC Build 💻",
    BuildTarget.NX_BUILD: "NX Build 🕹️",
}


@dataclass
class QueueResult:
    """빌드 큐 등록 결과."""

    target: BuildTarget
    success: bool
    status_code: int | None = None
    response_text: str = ""
    error: str = ""


class TeamCityClient:
    """TeamCity action.html 큐 등록 클라이언트."""

    def __init__(self, config: TeamCityConfig, token: str | None = None):
        self._config = config
        self._token = token or os.environ.get("TEAMCITY_TOKEN", "")
        if not self._token:
            raise RuntimeError(
                "TEAMCITY_TOKEN 환경변수가 설정되지 않았습니다."
            )
        if not config.base_url:
            raise RuntimeError("TeamCity base_url이 설정되지 않았습니다.")

        # 프로토콜이 없으면 http:// 로 간주
        base = config.base_url.rstrip("/")
        if not base.startswith(("http://", "https://")):
            base = f"http://{base}"
        self._action_url = f"{base}/action.html"

    def queue_build(self, target: BuildTarget) -> QueueResult:
        """빌드를 큐에 등록한다. 실패해도 예외를 던지지 않는다."""
        target_config = self._config.targets.get(target.value)
        if target_config is None:
            return QueueResult(target=target, success=False,
                               error=f"No build configuration for {target.value}")

        params: list[tuple[str, str]] = [("add2Queue", target_config.build_type_id)]
        for name, value in target_config.properties:
            params.extend([("name", name), ("value", value)])

        headers = {
            "Authorization": f"Bearer {self._token}",
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        }

        try:
            with httpx.Client(timeout=self._config.timeout_sec) as client:
                resp = client.post(self._action_url, params=params, headers=headers)
        except httpx.TimeoutException as e:
            logger.error(
                "TeamCity request timed out: %s", e,
                extra={"event_code": "QUEUE_TIMEOUT"},
            )
            return QueueResult(target=target, success=False,
                               error=f"Failed to connect to TeamCity: timed out after "
                                     f"{self._config.timeout_sec:g}s")
        except httpx.HTTPError as e:
            logger.error(
                "TeamCity request failed: %s", e,
                extra={"event_code": "QUEUE_ERROR"},
            )
            return QueueResult(target=target, success=False,
                               error=f"Failed to connect to TeamCity: {e}")

        logger.info(
            "TeamCity responded %d for %s", resp.status_code, target.value,
            extra={"event_code": "QUEUE_RESPONSE", "status_code": resp.status_code},
        )
        if resp.is_success:
            return QueueResult(target=target, success=True,
                               status_code=resp.status_code, response_text=resp.text)
        return QueueResult(
            target=target,
            success=False,
            status_code=resp.status_code,
            response_text=resp.text,
            error=f"TeamCity responded with status {resp.status_code}: {resp.text}",
        )


def build_queue_result_card(result: QueueResult, *, now: datetime | None = None) -> VisualCard:
    """큐 등록 성공/실패 카드."""
    now = now or datetime.now(tz=UTC)
    timestamp_text = now.strftime("%Y-%m-%d %H:%M:%S %Z")

    if result.success:
        card = VisualCard(
            title=format_title("✅ Build Successfully Queued"),
            description="The build has been successfully added to the TeamCity queue.",
            color=QUEUED_COLOR,
            footer=format_footer(COMMAND_FOOTER),
            timestamp=now,
        )
        card.add_field("Project", result.target.value, inline=True)
        card.add_field("Status", "Queued", inline=True)
    else:
        card = VisualCard(
            title=format_title("❌ Build Queue Failed"),
            description="Failed to queue the build in TeamCity.",
            color=QUEUE_FAILED_COLOR,
            footer=format_footer(COMMAND_FOOTER),
            timestamp=now,
        )
        card.add_field("Project", result.target.value, inline=True)
        card.add_field("Status", "Failed", inline=True)
        card.add_field("Error", format_field_value(result.error or "Unknown error occurred"),
                       inline=False)

    card.add_field("Timestamp", timestamp_text, inline=True)
    return card
