"""YAML 설정 로딩 + Pydantic 모델."""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

_DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "config.yaml"


class DiscordConfig(BaseModel):
    api_base: str = "https://discord.com/api/v10"
    notifications_channel_id: str = ""  # snowflake ID
    timeout_sec: float = 10.0
    max_retries: int = 3
    backoff_factor: float = 2.0


class BuildTargetConfig(BaseModel):
    build_type_id: str
    # add2Queue에 name/value 쌍으로 붙는 빌드 파라미터 (순서 유지)
    properties: list[tuple[str, str]] = Field(default_factory=list)


def _default_targets() -> dict[str, BuildTargetConfig]:
    return {
        "TELLTALE_TOOL": BuildTargetConfig(build_type_id="Wolf1Remaster_TelltaleTool"),
        "PC_BUILD": BuildTargetConfig(build_type_id="Wolf1Remaster_BuildExecutable"),
        "NX_BUILD": BuildTargetConfig(
            build_type_id="Wolf1Remaster_BuildExecutable",
            properties=[
                ("visualStudioPlatform", "NX64"),
                ("bconfFile", "nx.bconf"),
                ("toolPlatform", "NX"),
            ],
        ),
    }


class TeamCityConfig(BaseModel):
    base_url: str = ""
    timeout_sec: float = 10.0
    targets: dict[str, BuildTargetConfig] = Field(default_factory=_default_targets)


class WebhookConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = Field(default=3000, ge=1, le=65535)
    route: str = "/webhook"

    @field_validator("route")
    @classmethod
    def route_starts_with_slash(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError("route must start with '/'")
        return v


class AppConfig(BaseModel):
    """애플리케이션 전체 설정."""

    discord: DiscordConfig = Field(default_factory=DiscordConfig)
    teamcity: TeamCityConfig = Field(default_factory=TeamCityConfig)
    webhook: WebhookConfig = Field(default_factory=WebhookConfig)


# 환경변수 → (섹션, 키)
_ENV_OVERRIDES = {
    "WEBHOOK_NOTIFICATIONS_CHANNEL_ID": ("discord", "notifications_channel_id"),
    "DISCORD_API_BASE": ("discord", "api_base"),
    "TEAMCITY_BASE_URL": ("teamcity", "base_url"),
    "WEBHOOK_HOST": ("webhook", "host"),
    "WEBHOOK_PORT": ("webhook", "port"),
    "WEBHOOK_ROUTE": ("webhook", "route"),
}


def load_config(path: Path | None = None) -> AppConfig:
    """YAML 설정 파일을 로딩하고 Pydantic 모델로 검증한다.

    환경변수 우선순위: 시스템 환경변수 > .env 파일 > config.yaml 값 > 기본값
    경로를 지정하지 않았고 기본 config.yaml도 없으면 기본값에서 시작한다.
    토큰(DISCORD_TOKEN, TEAMCITY_TOKEN)은 각 클라이언트가 환경변수에서 읽는다.
    """
    config_path = path or _DEFAULT_CONFIG_PATH
    load_dotenv(dotenv_path=config_path.parent / ".env", override=False)

    if path is None and not config_path.exists():
        raw: dict = {}
    else:
        with open(config_path) as f:
            raw = yaml.safe_load(f)
        if raw is None:
            raise ValueError(f"Empty config file: {config_path}")

    for env_name, (section, key) in _ENV_OVERRIDES.items():
        if value := os.environ.get(env_name):
            raw.setdefault(section, {})
            raw[section][key] = value

    return AppConfig.model_validate(raw)
