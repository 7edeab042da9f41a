"""TeamCity 빌드 웹훅 이벤트 모델 (Pydantic) 및 타입 가드."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

BUILD_EVENT_PREFIX = "BUILD_"

# TeamCity는 eventType / running-info 키를 사용한다.
EVENT_KIND_KEYS = ("eventType", "eventKind")
RUNNING_INFO_KEYS = ("running-info", "runningInfo")


class EventKind(StrEnum):
    BUILD_STARTED = "BUILD_STARTED"
    BUILD_FINISHED = "BUILD_FINISHED"
    BUILD_INTERRUPTED = "BUILD_INTERRUPTED"


def parse_event_kind(value: str) -> EventKind | str:
    """알려진 종류면 EventKind, 아니면 원본 문자열을 그대로 반환."""
    try:
        return EventKind(value)
    except ValueError:
        return value


def raw_event_kind(obj: Any) -> Any:
    """원본 dict에서 이벤트 종류 값을 꺼낸다 (없으면 None)."""
    if not isinstance(obj, dict):
        return None
    for key in EVENT_KIND_KEYS:
        if key in obj:
            return obj[key]
    return None


def raw_running_info(payload: dict[str, Any]) -> Any:
    for key in RUNNING_INFO_KEYS:
        if payload.get(key) is not None:
            return payload[key]
    return None


# ── 하위 레코드 ─────────────────────────────────────────


class _Record(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class BuildType(_Record):
    id: str = "unknown"
    name: str
    description: str = ""
    project_name: str = Field(alias="projectName")
    project_id: str = Field(default="unknown", alias="projectId")
    href: str = ""
    web_url: str = Field(default="", alias="webUrl")


class User(_Record):
    username: str = ""
    id: int | str | None = None
    href: str = ""


class Agent(_Record):
    id: int | str | None = None
    name: str = ""
    type_id: int | str | None = Field(default=None, alias="typeId")
    href: str = ""
    web_url: str = Field(default="", alias="webUrl")


class RunningInfo(_Record):
    """진행 정보 (주로 BUILD_STARTED / BUILD_INTERRUPTED)."""

    percentage_complete: int | float = Field(default=0, alias="percentageComplete")
    elapsed_seconds: int | float = Field(default=0, alias="elapsedSeconds")
    estimated_total_seconds: int | float = Field(default=0, alias="estimatedTotalSeconds")
    current_stage_text: str | None = Field(default=None, alias="currentStageText")
    outdated: bool = False
    probably_hanging: bool = Field(default=False, alias="probablyHanging")


class CanceledInfo(_Record):
    """취소 정보 (BUILD_INTERRUPTED)."""

    timestamp: str = ""
    text: str = ""
    user: User | None = None


class Change(_Record):
    id: int | str | None = None
    version: str = ""
    username: str = ""
    date: str = ""
    href: str = ""
    web_url: str = Field(default="", alias="webUrl")


class LastChanges(_Record):
    """count와 change 목록 길이는 서로 독립적이다."""

    count: int = 0
    change: list[Change] = Field(default_factory=list)


# ── 이벤트 ─────────────────────────────────────────────


class BuildPayload(_Record):
    """검증/정제를 거친 TeamCity 빌드 페이로드."""

    id: int
    build_type_id: str = Field(alias="buildTypeId")
    number: str
    status: str
    state: str
    href: str = ""
    web_url: str = Field(alias="webUrl")
    status_text: str = Field(alias="statusText")
    build_type: BuildType = Field(alias="buildType")

    queued_date: str | None = Field(default=None, alias="queuedDate")
    start_date: str | None = Field(default=None, alias="startDate")
    finish_date: str | None = Field(default=None, alias="finishDate")
    finish_on_agent_date: str | None = Field(default=None, alias="finishOnAgentDate")

    running_info: RunningInfo | None = Field(default=None, alias="running-info")
    canceled_info: CanceledInfo | None = Field(default=None, alias="canceledInfo")
    agent: Agent | None = None
    last_changes: LastChanges | None = Field(default=None, alias="lastChanges")

    # 포매터에서 쓰지 않는 TeamCity 컬렉션은 원본 그대로 보존
    triggered: Any = None
    changes: Any = None
    revisions: Any = None
    artifacts: Any = None
    related_issues: Any = Field(default=None, alias="relatedIssues")
    properties: Any = None
    statistics: Any = None
    vcs_labels: Any = Field(default=None, alias="vcsLabels")
    customization: Any = None


class BuildEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    event_kind: str = Field(alias="eventType")
    payload: BuildPayload

    @property
    def kind(self) -> EventKind | str:
        return parse_event_kind(self.event_kind)


# ── 타입 가드 ───────────────────────────────────────────


def looks_like_build_event(obj: Any) -> bool:
    """느슨한 검사: BUILD_ 접두사를 가진 이벤트면 빌드 이벤트로 본다."""
    kind = raw_event_kind(obj)
    if not isinstance(kind, str):
        return False
    return kind in EventKind.__members__ or kind.startswith(BUILD_EVENT_PREFIX)


def is_fully_valid_build_event(obj: Any) -> bool:
    """엄격한 검사: 필수 필드가 모두 올바른 타입인지 확인한다."""
    if not looks_like_build_event(obj):
        return False

    payload = obj.get("payload")
    if not isinstance(payload, dict):
        return False

    build_id = payload.get("id")
    if isinstance(build_id, bool) or not isinstance(build_id, (int, float)):
        return False
    for key in ("buildTypeId", "number", "status", "state", "webUrl"):
        if not isinstance(payload.get(key), str):
            return False

    build_type = payload.get("buildType")
    return (
        isinstance(build_type, dict)
        and isinstance(build_type.get("name"), str)
        and isinstance(build_type.get("projectName"), str)
    )


def is_build_started(event: BuildEvent) -> bool:
    return event.kind is EventKind.BUILD_STARTED


def is_build_finished(event: BuildEvent) -> bool:
    return event.kind is EventKind.BUILD_FINISHED


def is_build_interrupted(event: BuildEvent) -> bool:
    return event.kind is EventKind.BUILD_INTERRUPTED


def has_running_info(payload: BuildPayload) -> bool:
    return payload.running_info is not None


def has_canceled_info(payload: BuildPayload) -> bool:
    return payload.canceled_info is not None


def has_agent(payload: BuildPayload) -> bool:
    return payload.agent is not None


def has_last_changes(payload: BuildPayload) -> bool:
    return payload.last_changes is not None and payload.last_changes.count > 0
