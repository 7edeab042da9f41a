"""웹훅 이벤트 구조 검증 및 기본값 채우기(sanitize)."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from teamcity_bridge.models import (
    Agent,
    BuildEvent,
    BuildPayload,
    BuildType,
    CanceledInfo,
    LastChanges,
    RunningInfo,
    raw_event_kind,
    raw_running_info,
)

logger = logging.getLogger(__name__)

REQUIRED_PAYLOAD_FIELDS = ("id", "buildTypeId", "number", "status", "state", "webUrl", "buildType")
REQUIRED_BUILD_TYPE_FIELDS = ("name", "projectName")

# 원본에 있을 때만 그대로 복사하는 선택 필드
_PASSTHROUGH_FIELDS = (
    "triggered", "changes", "revisions", "artifacts", "relatedIssues",
    "properties", "statistics", "vcsLabels", "customization",
)
_DATE_FIELDS = ("queuedDate", "startDate", "finishDate", "finishOnAgentDate")

# 선택 하위 레코드를 복사할 때 내려가는 최대 깊이 (lastChanges.change[].* 가 3단계)
MAX_RECORD_DEPTH = 8

_R = TypeVar("_R", bound=BaseModel)


@dataclass
class ValidationResult:
    """검증 결과. errors가 있으면 is_valid=False, warnings는 진행을 막지 않는다."""

    is_valid: bool = True
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add_error(self, message: str) -> None:
        self.is_valid = False
        self.errors.append(message)


def validate_generic(event: Any) -> ValidationResult:
    """웹훅 이벤트 공통 구조(eventType + payload)를 검증한다."""
    result = ValidationResult()

    if event is None:
        result.add_error("Event is null or undefined")
        return result
    if not isinstance(event, dict):
        result.add_error("Event must be an object")
        return result

    kind = raw_event_kind(event)
    if not kind:
        result.add_error("Event must have an eventType")
    elif not isinstance(kind, str):
        result.add_error("eventType must be a string")

    payload = event.get("payload")
    if payload is None or (not payload and not isinstance(payload, (dict, list))):
        result.add_error("Event must have a payload")
        return result
    if not isinstance(payload, dict):
        result.add_error("Payload must be an object")
        return result

    return result


def validate_build_event(event: Any) -> ValidationResult:
    """TeamCity 빌드 이벤트의 필수 필드를 검증한다.

    누락 필드는 한 번에 모두 보고한다 (short-circuit 없음).
    """
    result = validate_generic(event)
    if not result.is_valid:
        return result

    payload: dict[str, Any] = event["payload"]

    for key in REQUIRED_PAYLOAD_FIELDS:
        if payload.get(key) is None:
            result.add_error(f"Missing required field: {key}")

    build_type = payload.get("buildType")
    if build_type is not None:
        if not isinstance(build_type, dict):
            result.add_error("buildType must be an object")
        else:
            for key in REQUIRED_BUILD_TYPE_FIELDS:
                if not build_type.get(key):
                    result.add_error(f"Missing required buildType field: {key}")

    build_id = payload.get("id")
    if build_id is not None and (
        isinstance(build_id, bool) or not isinstance(build_id, (int, float)) or build_id <= 0
    ):
        result.warnings.append("id should be a positive number")

    web_url = payload.get("webUrl")
    if web_url is not None and not isinstance(web_url, str):
        result.warnings.append("webUrl should be a string")

    return result


def _str_or(value: Any, default: str) -> str:
    return value if isinstance(value, str) and value else default


def _drop_nulls(value: Any, depth: int = 0, path: frozenset[int] = frozenset()) -> Any:
    """null 값을 제거한 사본.

    MAX_RECORD_DEPTH보다 깊은 중첩과 현재 경로에 이미 있는 객체(순환 참조)는 비운다.
    """
    if not isinstance(value, (dict, list)):
        return value
    if depth >= MAX_RECORD_DEPTH or id(value) in path:
        return type(value)()

    path = path | {id(value)}
    if isinstance(value, dict):
        return {k: _drop_nulls(v, depth + 1, path) for k, v in value.items() if v is not None}
    return [_drop_nulls(v, depth + 1, path) for v in value if v is not None]


def _optional_record(model: type[_R], raw: Any, name: str) -> _R | None:
    """선택 하위 레코드를 모델로 변환한다. 형식이 맞지 않으면 버린다."""
    if raw is None:
        return None
    if not isinstance(raw, dict):
        logger.warning("Dropping %s: expected object, got %s", name, type(raw).__name__)
        return None
    try:
        return model.model_validate(_drop_nulls(raw))
    except ValidationError as e:
        logger.warning("Dropping malformed %s: %s", name, e.error_count())
        return None
    except RecursionError:
        logger.warning("Dropping %s: structure too deep", name)
        return None


def _sanitize_build_type(raw: Any) -> BuildType:
    source = raw if isinstance(raw, dict) else {}
    return BuildType(
        id=_str_or(source.get("id"), "unknown"),
        name=_str_or(source.get("name"), "Unknown Build"),
        description=_str_or(source.get("description"), ""),
        project_name=_str_or(source.get("projectName"), "Unknown Project"),
        project_id=_str_or(source.get("projectId"), "unknown"),
        href=_str_or(source.get("href"), ""),
        web_url=_str_or(source.get("webUrl"), ""),
    )


def sanitize_build_event(event: Any) -> BuildEvent:
    """어떤 입력이든 모든 필수 필드가 채워진 BuildEvent로 변환한다.

    누락되었거나 타입이 맞지 않는 필수 필드는 기본값으로 대체하고,
    선택 하위 레코드는 원본에 있을 때만 복사한다.
    """
    source = event if isinstance(event, dict) else {}
    payload = source.get("payload")
    if not isinstance(payload, dict):
        payload = {}

    build_id = payload.get("id")
    if isinstance(build_id, bool) or not isinstance(build_id, (int, float)):
        build_id = 0

    status = payload.get("status")
    fields: dict[str, Any] = {
        "id": int(build_id),
        "build_type_id": _str_or(payload.get("buildTypeId"), "unknown"),
        "number": _str_or(payload.get("number"), "0"),
        "status": _str_or(status, "UNKNOWN"),
        "state": _str_or(payload.get("state"), "unknown"),
        "href": _str_or(payload.get("href"), ""),
        "web_url": _str_or(payload.get("webUrl"), ""),
        "status_text": _str_or(payload.get("statusText"), _str_or(status, "Unknown")),
        "build_type": _sanitize_build_type(payload.get("buildType")),
        "running_info": _optional_record(RunningInfo, raw_running_info(payload), "running-info"),
        "canceled_info": _optional_record(CanceledInfo, payload.get("canceledInfo"), "canceledInfo"),
        "agent": _optional_record(Agent, payload.get("agent"), "agent"),
        "last_changes": _optional_record(LastChanges, payload.get("lastChanges"), "lastChanges"),
    }

    extra: dict[str, Any] = {}
    for key in _DATE_FIELDS:
        if isinstance(payload.get(key), str) and payload[key]:
            extra[key] = payload[key]
    for key in _PASSTHROUGH_FIELDS:
        if payload.get(key):
            extra[key] = payload[key]

    kind = raw_event_kind(source)
    return BuildEvent(
        event_kind=_str_or(kind, "UNKNOWN"),
        payload=BuildPayload.model_validate({**extra, **fields}),
    )


def format_errors_for_display(result: ValidationResult) -> str:
    """"Errors: a, b; Warnings: c" 형태의 한 줄 요약."""
    messages: list[str] = []
    if result.errors:
        messages.append(f"Errors: {', '.join(result.errors)}")
    if result.warnings:
        messages.append(f"Warnings: {', '.join(result.warnings)}")
    return "; ".join(messages)
