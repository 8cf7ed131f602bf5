"""Shared fixtures for the image-forge test suite."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from image_forge.cli.deployment.shell_commands import CommandResult


@pytest.fixture(autouse=True)
def _isolated_project_root(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep tests from picking up a deployment repository from the environment."""
    monkeypatch.delenv("IMAGE_FORGE_PROJECT_ROOT", raising=False)


@pytest.fixture
def mock_commands() -> MagicMock:
    """Shell commands whose docker and git calls all succeed."""
    commands = MagicMock()
    commands.docker.build.return_value = CommandResult(success=True)
    commands.docker.login.return_value = CommandResult(success=True)
    commands.docker.logout.return_value = CommandResult(success=True)
    commands.docker.push_image.return_value = CommandResult(success=True)
    commands.docker.image_user.return_value = None
    commands.git.clone.return_value = CommandResult(success=True)
    commands.git.short_sha.return_value = "abc1234"
    commands.git.head_commit.return_value = "abc1234def5678900000000000000000000000000"
    commands.git.head_message.return_value = "feat: initial import"
    commands.git.remote_url.return_value = None
    commands.git.add.return_value = CommandResult(success=True)
    commands.git.has_staged_changes.return_value = True
    commands.git.commit.return_value = CommandResult(success=True)
    commands.git.tag.return_value = CommandResult(success=True)
    commands.git.push.return_value = CommandResult(success=True)
    return commands


@pytest.fixture
def mock_console() -> MagicMock:
    """Console double recording info/ok/warn/error calls."""
    return MagicMock()

