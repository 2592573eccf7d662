from __future__ import annotations

from pathlib import Path

import allure
import pytest

from cc_demon.config import GatewaySettings, SessionSettings, Settings
from cc_demon.session.models import SessionConfig

pytestmark = [
    allure.epic("Gateway Daemon"),
    allure.feature("Configuration"),
]


def test_from_env_uses_defaults(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("CC_DEMON_CLAUDE_COMMAND", "claude")

    settings = Settings.from_env()

    assert settings.gateway == GatewaySettings()
    assert settings.session.command == ("claude",)
    assert settings.session.response_timeout_seconds is None
    assert settings.session.max_restart_attempts == 3


def test_from_env_parses_overrides(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("CC_DEMON_CLAUDE_COMMAND", "npx '@anthropic-ai/claude-code'")
    clean_env.setenv("CC_DEMON_MODEL", "opus")
    clean_env.setenv("CC_DEMON_MAX_TURNS", "4")
    clean_env.setenv("CC_DEMON_MAX_BUDGET_USD", "1.5")
    clean_env.setenv("CC_DEMON_ALLOWED_TOOLS", "Read, Grep,,Read")
    clean_env.setenv("CC_DEMON_DISALLOWED_TOOLS", "Bash")
    clean_env.setenv("CC_DEMON_RESPONSE_TIMEOUT_SECONDS", "45")
    clean_env.setenv("CC_DEMON_QUEUE_CAPACITY", "7")

    settings = Settings.from_env()

    assert settings.session.command == ("npx", "@anthropic-ai/claude-code")
    assert settings.gateway.default_model == "opus"
    assert settings.gateway.max_turns == 4
    assert settings.gateway.max_budget_usd == 1.5
    assert settings.gateway.allowed_tools == ("Read", "Grep")
    assert settings.gateway.disallowed_tools == ("Bash",)
    assert settings.session.response_timeout_seconds == 45.0
    assert settings.session.queue_capacity == 7


def test_from_env_uses_existing_cli_path(clean_env: pytest.MonkeyPatch, tmp_path: Path) -> None:
    cli = tmp_path / "claude"
    cli.write_text("#!/bin/sh\n", "utf-8")
    clean_env.setenv("CLAUDE_CODE_CLI_PATH", str(cli))

    assert Settings.from_env().session.command == (str(cli),)


def test_session_config_scales_gateway_limits() -> None:
    settings = Settings(
        gateway=GatewaySettings(max_turns=10, max_budget_usd=5.0, default_model="haiku"),
        session=SessionSettings(command=("claude",)),
    )

    config = settings.session_config()

    assert config.model == "haiku"
    assert config.max_turns == 100
    assert config.max_budget_usd == 50.0
    assert config.response_timeout_seconds == 360.0
    assert config.startup_timeout_seconds == 60.0
    assert config.drain_timeout_seconds == SessionConfig().drain_timeout_seconds


def test_session_config_keeps_explicit_response_timeout() -> None:
    settings = Settings(session=SessionSettings(response_timeout_seconds=42.0))

    assert settings.session_config().response_timeout_seconds == 42.0


@pytest.mark.parametrize(
    ("settings", "env_name"),
    [
        (Settings(session=SessionSettings(command=())), "CC_DEMON_CLAUDE_COMMAND"),
        (Settings(gateway=GatewaySettings(max_turns=0)), "CC_DEMON_MAX_TURNS"),
        (Settings(gateway=GatewaySettings(max_budget_usd=0)), "CC_DEMON_MAX_BUDGET_USD"),
        (
            Settings(gateway=GatewaySettings(compact_interval_seconds=-1)),
            "CC_DEMON_COMPACT_INTERVAL_SECONDS",
        ),
        (
            Settings(session=SessionSettings(startup_timeout_seconds=0)),
            "CC_DEMON_STARTUP_TIMEOUT_SECONDS",
        ),
        (
            Settings(session=SessionSettings(response_timeout_seconds=0)),
            "CC_DEMON_RESPONSE_TIMEOUT_SECONDS",
        ),
        (
            Settings(session=SessionSettings(health_check_interval_seconds=0)),
            "CC_DEMON_HEALTH_CHECK_INTERVAL_SECONDS",
        ),
        (
            Settings(session=SessionSettings(max_restart_attempts=-1)),
            "CC_DEMON_MAX_RESTART_ATTEMPTS",
        ),
        (Settings(session=SessionSettings(queue_capacity=0)), "CC_DEMON_QUEUE_CAPACITY"),
    ],
)
def test_validate_for_session_names_offending_variable(settings: Settings, env_name: str) -> None:
    with pytest.raises(ValueError, match=env_name):
        settings.session_config()


def test_from_gateway_ignores_unset_overrides() -> None:
    config = SessionConfig.from_gateway(
        command=("claude",),
        model="sonnet",
        max_turns=2,
        max_budget_usd=1.0,
        response_timeout_seconds=None,
        queue_capacity=5,
    )

    assert config.response_timeout_seconds == 120.0
    assert config.queue_capacity == 5
