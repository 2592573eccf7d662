"""Shared test fixtures."""

from __future__ import annotations

import shlex

import pytest
from session_doubles import ECHO_AGENT_COMMAND

from cc_demon.session.models import SessionConfig

_CC_DEMON_ENV = (
    "CC_DEMON_CLAUDE_COMMAND",
    "CC_DEMON_MODEL",
    "CC_DEMON_MAX_TURNS",
    "CC_DEMON_MAX_BUDGET_USD",
    "CC_DEMON_ALLOWED_TOOLS",
    "CC_DEMON_DISALLOWED_TOOLS",
    "CC_DEMON_APPEND_SYSTEM_PROMPT",
    "CC_DEMON_SESSION_NAME",
    "CC_DEMON_COMPACT_INTERVAL_SECONDS",
    "CC_DEMON_STARTUP_TIMEOUT_SECONDS",
    "CC_DEMON_RESPONSE_TIMEOUT_SECONDS",
    "CC_DEMON_HEALTH_CHECK_INTERVAL_SECONDS",
    "CC_DEMON_MAX_RESTART_ATTEMPTS",
    "CC_DEMON_QUEUE_CAPACITY",
    "CLAUDE_CODE_CLI_PATH",
)


@pytest.fixture()
def fast_config() -> SessionConfig:
    """Session config with short timeouts and idle background loops."""
    return SessionConfig(
        command=("claude",),
        session_name="test-session",
        startup_timeout_seconds=2.0,
        response_timeout_seconds=2.0,
        drain_timeout_seconds=0.01,
        health_check_interval_seconds=3600.0,
        compact_interval_seconds=3600.0,
        restart_delay_seconds=0.0,
        terminate_grace_seconds=1.0,
    )


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Remove every cc-demon variable so defaults apply."""
    for name in _CC_DEMON_ENV:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture()
def echo_agent_env(clean_env: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Point the CLI at the local echo agent with test-friendly timeouts."""
    clean_env.setenv("CC_DEMON_CLAUDE_COMMAND", shlex.join(ECHO_AGENT_COMMAND))
    clean_env.setenv("CC_DEMON_STARTUP_TIMEOUT_SECONDS", "30")
    clean_env.setenv("CC_DEMON_RESPONSE_TIMEOUT_SECONDS", "30")
    return clean_env
