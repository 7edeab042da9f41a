"""CLI 통합 테스트."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import orjson
import pytest
from click.testing import CliRunner
from teamcity_bridge.cli import main
from teamcity_bridge.teamcity import BuildTarget, QueueResult


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


class TestMain:
    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output


class TestNewbuildCommand:
    """newbuild 명령 테스트."""

    @patch("teamcity_bridge.cli.DiscordClient")
    @patch("teamcity_bridge.cli.TeamCityClient")
    def test_queue_success(
        self,
        mock_tc_cls: MagicMock,
        mock_discord_cls: MagicMock,
        runner: CliRunner,
        tmp_config_file: Path,
    ) -> None:
        mock_tc_cls.return_value.queue_build.return_value = QueueResult(
            target=BuildTarget.PC_BUILD, success=True, status_code=200,
        )

        result = runner.invoke(
            main, ["newbuild", "--project", "PC_BUILD", "--config", str(tmp_config_file)],
        )

        assert result.exit_code == 0
        assert "PC Build" in result.output
        mock_tc_cls.return_value.queue_build.assert_called_once_with(BuildTarget.PC_BUILD)
        channel_id, card = mock_discord_cls.return_value.send_card.call_args.args
        assert channel_id == "944039671707607060"
        assert card.title == "✅ Build Successfully Queued"

    @patch("teamcity_bridge.cli.DiscordClient")
    @patch("teamcity_bridge.cli.TeamCityClient")
    def test_queue_failure(
        self,
        mock_tc_cls: MagicMock,
        mock_discord_cls: MagicMock,
        runner: CliRunner,
        tmp_config_file: Path,
    ) -> None:
        mock_tc_cls.return_value.queue_build.return_value = QueueResult(
            target=BuildTarget.NX_BUILD, success=False,
            error="Failed to connect to TeamCity: timed out after 10s",
        )

        result = runner.invoke(
            main, ["newbuild", "--project", "NX_BUILD", "--config", str(tmp_config_file)],
        )

        assert result.exit_code == 1
        _, card = mock_discord_cls.return_value.send_card.call_args.args
        assert card.title == "❌ Build Queue Failed"

    @patch("teamcity_bridge.cli.DiscordClient")
    @patch("teamcity_bridge.cli.TeamCityClient")
    def test_dry_run(
        self,
        mock_tc_cls: MagicMock,
        mock_discord_cls: MagicMock,
        runner: CliRunner,
        tmp_config_file: Path,
    ) -> None:
        mock_tc_cls.return_value.queue_build.return_value = QueueResult(
            target=BuildTarget.TELLTALE_TOOL, success=True, status_code=200,
        )

        result = runner.invoke(main, [
            "newbuild", "--project", "TELLTALE_TOOL",
            "--config", str(tmp_config_file), "--dry-run",
        ])

        assert result.exit_code == 0
        assert "Build Successfully Queued" in result.output
        mock_discord_cls.assert_not_called()

    def test_invalid_project(self, runner: CliRunner, tmp_config_file: Path) -> None:
        result = runner.invoke(
            main, ["newbuild", "--project", "PS5_BUILD", "--config", str(tmp_config_file)],
        )
        assert result.exit_code != 0

    def test_missing_teamcity_token(self, runner: CliRunner, tmp_config_file: Path) -> None:
        result = runner.invoke(
            main, ["newbuild", "--project", "PC_BUILD", "--config", str(tmp_config_file)],
        )
        assert result.exit_code == 1


class TestRenderCommand:
    """render 명령 테스트."""

    def test_render_build_event(
        self, runner: CliRunner, tmp_path: Path, sample_finished_event: dict,
    ) -> None:
        payload_file = tmp_path / "event.json"
        payload_file.write_bytes(orjson.dumps(sample_finished_event))

        result = runner.invoke(main, ["render", str(payload_file)])

        assert result.exit_code == 0
        output = orjson.loads(result.output)
        assert output["path"] == "specialized"
        assert output["embed"]["title"] == "✅ Build Finished: Build Executable"

    def test_render_invalid_json(self, runner: CliRunner, tmp_path: Path) -> None:
        payload_file = tmp_path / "event.json"
        payload_file.write_text("{broken", encoding="utf-8")

        result = runner.invoke(main, ["render", str(payload_file)])

        assert result.exit_code == 1


class TestServeCommand:
    """serve 명령 테스트."""

    @patch("uvicorn.run")
    @patch("teamcity_bridge.cli.DiscordClient")
    def test_serve(
        self,
        mock_discord_cls: MagicMock,
        mock_run: MagicMock,
        runner: CliRunner,
        tmp_config_file: Path,
    ) -> None:
        result = runner.invoke(main, ["serve", "--config", str(tmp_config_file)])

        assert result.exit_code == 0
        mock_run.assert_called_once()
        assert mock_run.call_args.kwargs["host"] == "127.0.0.1"
        assert mock_run.call_args.kwargs["port"] == 3000

    def test_serve_without_channel(self, runner: CliRunner, tmp_path: Path) -> None:
        config_path = tmp_path / "config.yaml"
        config_path.write_text("webhook:\n  port: 3000\n", encoding="utf-8")

        result = runner.invoke(main, ["serve", "--config", str(config_path)])

        assert result.exit_code == 1
