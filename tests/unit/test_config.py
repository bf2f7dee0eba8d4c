"""Tests for core/config.py: TremorConfig and GitCommands."""
from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from tremor.core.config import GitCommands, TremorConfig
from tremor.core.exceptions import ConfigurationError

_ENV_VARS = ("TREMOR_BUILD_DIR", "TREMOR_GIT_PATH", "TREMOR_TIMEOUT", "TREMOR_LOG_LEVEL")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    config = TremorConfig()
    assert config.git_path == "git"
    assert config.timeout == 3600
    assert config.log_level == "INFO"
    assert config.build_dir.name == "builds"


def test_from_env_defaults_when_not_set() -> None:
    config = TremorConfig.from_env()
    assert config.timeout == 3600
    assert config.git_path == "git"


def test_from_env_reads_all_values(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("TREMOR_BUILD_DIR", str(tmp_path / "b"))
    monkeypatch.setenv("TREMOR_GIT_PATH", "/usr/local/bin/git")
    monkeypatch.setenv("TREMOR_TIMEOUT", "120")
    monkeypatch.setenv("TREMOR_LOG_LEVEL", "debug")

    config = TremorConfig.from_env()
    assert config.build_dir == tmp_path / "b"
    assert config.git_path == "/usr/local/bin/git"
    assert config.timeout == 120
    assert config.log_level == "DEBUG"


def test_from_env_rejects_non_integer_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TREMOR_TIMEOUT", "soon")
    with pytest.raises(ConfigurationError):
        TremorConfig.from_env()


def test_timeout_must_be_positive() -> None:
    with pytest.raises(ValidationError):
        TremorConfig(timeout=0)


def test_git_commands_defaults() -> None:
    commands = GitCommands()
    assert commands.fetch == ["fetch", "origin"]
    assert commands.reset == ["reset", "--hard", "{revision}"]
    assert "{repository}" in commands.clone


def test_git_commands_override_one_template() -> None:
    commands = GitCommands(fetch=["fetch", "--prune", "origin"])
    assert commands.fetch == ["fetch", "--prune", "origin"]
    assert commands.checkout == ["checkout", "-q", "-f", "{branch}"]


def test_git_commands_reject_unknown_placeholder() -> None:
    with pytest.raises(ValidationError):
        GitCommands(reset=["reset", "--hard", "{sha}"])


def test_git_commands_reject_empty_template() -> None:
    with pytest.raises(ValidationError):
        GitCommands(fetch=[])
