"""Unit tests for the docker and git command wrappers."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from image_forge.cli.deployment.shell_commands import (
    CommandResult,
    DockerCommands,
    GitCommands,
)


@pytest.fixture
def runner() -> MagicMock:
    runner = MagicMock()
    runner.run.return_value = CommandResult(success=True)
    runner.run_streaming.return_value = CommandResult(success=True)
    return runner


class TestDockerCommands:
    def test_build_applies_tags_and_labels(self, runner: MagicMock, tmp_path: Path) -> None:
        DockerCommands(runner).build(
            tmp_path,
            tmp_path / "Dockerfile",
            ["ghcr.io/acme/api:latest", "ghcr.io/acme/api:sha-abc1234"],
            labels={"org.opencontainers.image.version": "1.1.0"},
        )

        cmd = runner.run_streaming.call_args.args[0]
        assert cmd == [
            "docker",
            "build",
            "-t",
            "ghcr.io/acme/api:latest",
            "-t",
            "ghcr.io/acme/api:sha-abc1234",
            "--label",
            "org.opencontainers.image.version=1.1.0",
            "-f",
            str(tmp_path / "Dockerfile"),
            str(tmp_path),
        ]

    def test_login_passes_secret_on_stdin(self, runner: MagicMock) -> None:
        DockerCommands(runner).login("ghcr.io", "octocat", "s3cr3t")

        cmd = runner.run.call_args.args[0]
        assert "s3cr3t" not in cmd
        assert "--password-stdin" in cmd
        assert runner.run.call_args.kwargs["input"] == "s3cr3t"

    def test_image_user(self, runner: MagicMock) -> None:
        runner.run.return_value = CommandResult(success=True, stdout="node\n")
        assert DockerCommands(runner).image_user("img:latest") == "node"

        runner.run.return_value = CommandResult(success=True, stdout="\n")
        assert DockerCommands(runner).image_user("img:latest") is None

    def test_push(self, runner: MagicMock) -> None:
        DockerCommands(runner).push_image("quay.io/img:latest")

        assert runner.run.call_args.args[0] == ["docker", "push", "quay.io/img:latest"]


class TestGitCommands:
    def test_clone_runs_from_parent(self, runner: MagicMock, tmp_path: Path) -> None:
        GitCommands(runner).clone("https://example.com/api.git", tmp_path / "api")

        assert runner.run.call_args.args[0] == [
            "git",
            "clone",
            "https://example.com/api.git",
            str(tmp_path / "api"),
        ]
        assert runner.run.call_args.kwargs["cwd"] == tmp_path

    def test_metadata_returns_none_on_failure(self, runner: MagicMock) -> None:
        runner.run.return_value = CommandResult(success=False, stderr="not a git repo")
        git = GitCommands(runner)

        assert git.short_sha() is None
        assert git.head_commit() is None
        assert git.head_message() is None
        assert git.remote_url() is None

    def test_short_sha(self, runner: MagicMock) -> None:
        runner.run.return_value = CommandResult(success=True, stdout="abc1234\n")
        assert GitCommands(runner).short_sha(Path("api")) == "abc1234"

    def test_has_staged_changes(self, runner: MagicMock) -> None:
        runner.run.return_value = CommandResult(success=False, returncode=1)
        assert GitCommands(runner).has_staged_changes() is True

        runner.run.return_value = CommandResult(success=True, returncode=0)
        assert GitCommands(runner).has_staged_changes() is False

    def test_tag_is_annotated(self, runner: MagicMock) -> None:
        GitCommands(runner).tag("v1.1.0", "Release 1.1.0")

        assert runner.run.call_args.args[0] == [
            "git",
            "tag",
            "-a",
            "v1.1.0",
            "-m",
            "Release 1.1.0",
        ]
