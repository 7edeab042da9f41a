"""TeamCity Discord 브리지 CLI.

teamcity-bridge serve --config config.yaml --json-log
teamcity-bridge newbuild --project PC_BUILD
teamcity-bridge render payload.json
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
import orjson

from teamcity_bridge.client import DiscordClient
from teamcity_bridge.config import load_config
from teamcity_bridge.logging_config import setup_logging
from teamcity_bridge.processor import render_event
from teamcity_bridge.teamcity import BuildTarget, TeamCityClient, build_queue_result_card
from teamcity_bridge.webhook import create_app, deliver_card

logger = logging.getLogger(__name__)


@click.group()
@click.version_option(version="0.1.0")
def main() -> None:
    """TeamCity 빌드 알림 Discord 브리지."""


@main.command()
@click.option("--config", "config_path", type=click.Path(exists=True, path_type=Path),
              default=None, help="설정 파일 경로 (기본: config.yaml)")
@click.option("--json-log", is_flag=True, help="JSON 형태 로그 출력")
def serve(config_path: Path | None, json_log: bool) -> None:
    """웹훅 수신 서버를 실행한다."""
    import uvicorn

    setup_logging(json_format=json_log)
    config = load_config(config_path)

    if not config.discord.notifications_channel_id:
        click.echo("WEBHOOK_NOTIFICATIONS_CHANNEL_ID is not configured", err=True)
        sys.exit(1)

    try:
        client = DiscordClient(config.discord)
    except RuntimeError as e:
        click.echo(str(e), err=True)
        sys.exit(1)

    app = create_app(config, client)
    logger.info(
        "Webhook server listening on %s:%d%s",
        config.webhook.host, config.webhook.port, config.webhook.route,
        extra={"event_code": "SERVER_START"},
    )
    uvicorn.run(app, host=config.webhook.host, port=config.webhook.port, log_config=None)


@main.command()
@click.option("--project", required=True,
              type=click.Choice([t.value for t in BuildTarget]),
              help="큐에 등록할 빌드 프로젝트")
@click.option("--config", "config_path", type=click.Path(exists=True, path_type=Path),
              default=None, help="설정 파일 경로 (기본: config.yaml)")
@click.option("--dry-run", is_flag=True, help="Discord 전송 없이 결과 카드만 출력")
@click.option("--json-log", is_flag=True, help="JSON 형태 로그 출력")
def newbuild(project: str, config_path: Path | None, dry_run: bool, json_log: bool) -> None:
    """TeamCity 빌드를 큐에 등록하고 결과 카드를 알림 채널에 보낸다."""
    setup_logging(json_format=json_log)
    config = load_config(config_path)
    target = BuildTarget(project)

    try:
        teamcity = TeamCityClient(config.teamcity)
    except RuntimeError as e:
        click.echo(str(e), err=True)
        sys.exit(1)

    result = teamcity.queue_build(target)
    card = build_queue_result_card(result)

    if dry_run:
        click.echo(orjson.dumps(card.to_embed(), option=orjson.OPT_INDENT_2).decode())
    else:
        try:
            discord = DiscordClient(config.discord)
        except RuntimeError as e:
            click.echo(str(e), err=True)
            sys.exit(1)
        if not deliver_card(discord, config.discord.notifications_channel_id, card,
                            event_kind="NEWBUILD"):
            click.echo("[WARN] Failed to send result card to Discord", err=True)

    if not result.success:
        click.echo(f"[FAIL] {target.label}: {result.error}", err=True)
        sys.exit(1)

    click.echo(f"[OK] {target.label} queued")


@main.command()
@click.argument("payload_file", type=click.Path(exists=True, path_type=Path))
def render(payload_file: Path) -> None:
    """웹훅 JSON 파일을 카드로 변환해 Discord embed JSON으로 출력한다."""
    try:
        body = orjson.loads(payload_file.read_bytes())
    except orjson.JSONDecodeError as e:
        click.echo(f"Invalid JSON: {e}", err=True)
        sys.exit(1)

    result = render_event(body)
    if not result.validation.is_valid:
        click.echo(f"[WARN] {result.validation.errors}", err=True)

    output = {"path": result.path, "embed": result.card.to_embed()}
    click.echo(orjson.dumps(output, option=orjson.OPT_INDENT_2).decode())
