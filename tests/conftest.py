"""공통 fixture."""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any

import pytest
import yaml


@pytest.fixture()
def sample_build_type() -> dict[str, Any]:
    return {
        "id": "Wolf1Remaster_BuildExecutable",
        "name": "Build Executable",
        "description": "",
        "projectName": "Wolf1 Remaster",
        "projectId": "Wolf1Remaster",
        "href": "/app/rest/buildTypes/id:Wolf1Remaster_BuildExecutable",
        "webUrl": "https://tc.example.com/viewType.html?buildTypeId=Wolf1Remaster_BuildExecutable",
    }


@pytest.fixture()
def sample_started_event(sample_build_type: dict[str, Any]) -> dict[str, Any]:
    """BUILD_STARTED 웹훅 본문 샘플."""
    return {
        "eventType": "BUILD_STARTED",
        "payload": {
            "id": 4821,
            "buildTypeId": "Wolf1Remaster_BuildExecutable",
            "number": "152",
            "status": "SUCCESS",
            "state": "running",
            "href": "/app/rest/builds/id:4821",
            "webUrl": "https://tc.example.com/viewLog.html?buildId=4821",
            "statusText": "Running",
            "buildType": copy.deepcopy(sample_build_type),
            "queuedDate": "20250812T000005-0300",
            "startDate": "20250812T000012-0300",
            "running-info": {
                "percentageComplete": 0,
                "elapsedSeconds": 0,
                "estimatedTotalSeconds": 586,
                "currentStageText": "Resolving artifact dependencies",
                "outdated": False,
                "probablyHanging": False,
            },
            "agent": {"id": 3, "name": "build-agent-01", "typeId": 3},
        },
    }


@pytest.fixture()
def sample_finished_event(sample_build_type: dict[str, Any]) -> dict[str, Any]:
    """BUILD_FINISHED 웹훅 본문 샘플."""
    return {
        "eventType": "BUILD_FINISHED",
        "payload": {
            "id": 4821,
            "buildTypeId": "Wolf1Remaster_BuildExecutable",
            "number": "152",
            "status": "SUCCESS",
            "state": "finished",
            "href": "/app/rest/builds/id:4821",
            "webUrl": "https://tc.example.com/viewLog.html?buildId=4821",
            "statusText": "Success",
            "buildType": copy.deepcopy(sample_build_type),
            "startDate": "20250812T000012-0300",
            "finishDate": "20250812T003411-0300",
            "agent": {"id": 3, "name": "build-agent-01"},
            "lastChanges": {
                "count": 3,
                "change": [
                    {
                        "id": 901,
                        "version": "a1b2c3d",
                        "username": "minji",
                        "date": "20250811T231500-0300",
                    },
                ],
            },
        },
    }


@pytest.fixture()
def sample_interrupted_event(sample_build_type: dict[str, Any]) -> dict[str, Any]:
    """BUILD_INTERRUPTED 웹훅 본문 샘플."""
    return {
        "eventType": "BUILD_INTERRUPTED",
        "payload": {
            "id": 4822,
            "buildTypeId": "Wolf1Remaster_BuildExecutable",
            "number": "153",
            "status": "UNKNOWN",
            "state": "finished",
            "webUrl": "https://tc.example.com/viewLog.html?buildId=4822",
            "statusText": "Canceled",
            "buildType": copy.deepcopy(sample_build_type),
            "startDate": "20250812T010000-0300",
            "canceledInfo": {
                "timestamp": "20250812T010230-0300",
                "text": "Superseded by newer commit",
                "user": {"username": "jisoo", "id": 7},
            },
        },
    }


@pytest.fixture()
def sample_config_data() -> dict[str, Any]:
    """테스트용 config dict."""
    return {
        "discord": {
            "api_base": "https://discord.com/api/v10",
            "notifications_channel_id": "944039671707607060",
            "max_retries": 1,
            "backoff_factor": 0.01,  # 테스트에서는 대기 최소화
        },
        "teamcity": {"base_url": "https://tc.example.com"},
        "webhook": {"host": "127.0.0.1", "port": 3000, "route": "/webhook"},
    }


@pytest.fixture()
def tmp_config_file(tmp_path: Path, sample_config_data: dict[str, Any]) -> Path:
    """임시 config.yaml 파일."""
    config_path = tmp_path / "config.yaml"
    config_path.write_text(yaml.dump(sample_config_data), encoding="utf-8")
    return config_path


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """개발자 환경변수가 설정 로딩 테스트에 섞이지 않도록 비운다."""
    for name in (
        "WEBHOOK_NOTIFICATIONS_CHANNEL_ID", "DISCORD_API_BASE", "TEAMCITY_BASE_URL",
        "WEBHOOK_HOST", "WEBHOOK_PORT", "WEBHOOK_ROUTE", "DISCORD_TOKEN", "TEAMCITY_TOKEN",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _reset_logging():
    """CLI 테스트가 붙인 핸들러(닫힌 스트림)를 다음 테스트로 넘기지 않는다."""
    yield
    logger = logging.getLogger("teamcity_bridge")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
