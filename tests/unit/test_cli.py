"""
Unit tests for CLI commands.
"""

from pathlib import Path

import yaml
from typer.testing import CliRunner

from chatbridge import __version__
from chatbridge.audit.logger import AuditLogger
from chatbridge.cli.app import app


def test_version(cli_runner: CliRunner) -> None:
    """Test --version flag."""
    result = cli_runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_help(cli_runner: CliRunner) -> None:
    """Test --help flag."""
    result = cli_runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "platforms" in result.stdout
    assert "audit" in result.stdout


def test_platforms_list(cli_runner: CliRunner, chatbridge_home: Path) -> None:
    """Test platforms list shows configuration status."""
    (chatbridge_home / "config.yaml").write_text(
        yaml.safe_dump({"platforms": {"telegram": {"enable": True, "allowed_users": [42]}}}),
        encoding="utf-8",
    )

    result = cli_runner.invoke(app, ["platforms", "list"])

    assert result.exit_code == 0
    assert "telegram" in result.stdout
    assert "Enabled" in result.stdout
    assert "Missing token" in result.stdout


def test_platforms_start_without_enabled_platforms(
    cli_runner: CliRunner, chatbridge_home: Path
) -> None:
    """Test platforms start refuses to run with nothing enabled."""
    result = cli_runner.invoke(app, ["platforms", "start"])
    assert result.exit_code == 1
    assert "No platforms enabled" in result.stdout


def test_platforms_start_with_disabled_platform(
    cli_runner: CliRunner, chatbridge_home: Path
) -> None:
    """Test platforms start --platform with a platform that is not enabled."""
    result = cli_runner.invoke(app, ["platforms", "start", "--platform", "telegram"])
    assert result.exit_code == 1
    assert "Platform 'telegram' not enabled" in result.stdout


def test_explicit_config_file(cli_runner: CliRunner, chatbridge_home: Path, temp_dir: Path) -> None:
    """Test --config merges an extra file."""
    config_file = temp_dir / "bot.yaml"
    config_file.write_text(
        yaml.safe_dump({"platforms": {"telegram": {"enable": True, "bot_token": "1:A"}}}),
        encoding="utf-8",
    )

    result = cli_runner.invoke(app, ["--config", str(config_file), "platforms", "list"])

    assert result.exit_code == 0
    assert "Configured" in result.stdout


def test_missing_config_file(cli_runner: CliRunner, chatbridge_home: Path, temp_dir: Path) -> None:
    """Test --config with a missing file fails."""
    result = cli_runner.invoke(app, ["--config", str(temp_dir / "nope.yaml"), "platforms", "list"])
    assert result.exit_code == 1
    assert "not found" in result.stdout


def test_invalid_log_level(cli_runner: CliRunner, chatbridge_home: Path) -> None:
    """Test --log-level validation."""
    result = cli_runner.invoke(app, ["--log-level", "chatty", "platforms", "list"])
    assert result.exit_code == 2
    assert "Invalid log level" in result.stdout


def test_audit_tail_empty(cli_runner: CliRunner, chatbridge_home: Path) -> None:
    """Test audit tail without a log."""
    result = cli_runner.invoke(app, ["audit", "tail"])
    assert result.exit_code == 0
    assert "No audit events" in result.stdout


def test_audit_tail(cli_runner: CliRunner, chatbridge_home: Path) -> None:
    """Test audit tail prints the latest events."""
    logger = AuditLogger(log_path=chatbridge_home / "audit.jsonl", buffer_size=1)
    logger.log_platform_user_blocked("telegram", "99", "not in allowed users")
    logger.log_platform_adapter_started("telegram", "polling")

    result = cli_runner.invoke(app, ["audit", "tail", "-n", "1"])

    assert result.exit_code == 0
    assert "platform_adapter_started" in result.stdout
    assert "platform_user_blocked" not in result.stdout
