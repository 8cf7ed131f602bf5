"""Unit tests for repository working copies."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from image_forge.cli.deployment.deploy_config import RepositoryEntry
from image_forge.cli.deployment.errors import CloneError
from image_forge.cli.deployment.repository_set import (
    NO_COMMIT_MESSAGE,
    UNKNOWN_COMMIT,
    CommitInfo,
    RepositorySet,
    to_web_url,
)
from image_forge.cli.deployment.shell_commands import CommandResult


class TestToWebUrl:
    @pytest.mark.parametrize(
        ("remote", "expected"),
        [
            ("git@github.com:acme/api.git", "https://github.com/acme/api"),
            ("git@gitlab.com:group/sub/web", "https://gitlab.com/group/sub/web"),
            ("ssh://git@example.com:2222/acme/api.git", "https://example.com/acme/api"),
            ("https://github.com/acme/api.git", "https://github.com/acme/api"),
            ("https://token@github.com/acme/api.git", "https://github.com/acme/api"),
            ("http://example.com/acme/api/", "http://example.com/acme/api"),
            ("/srv/git/api.git", "/srv/git/api.git"),
        ],
    )
    def test_translation(self, remote: str, expected: str) -> None:
        assert to_web_url(remote) == expected


class TestCommitInfo:
    def test_short_id_and_commit_url(self) -> None:
        info = CommitInfo("0123456789abcdef", "fix: things", "https://github.com/acme/api")

        assert info.short_id == "01234567"
        assert info.commit_url == "https://github.com/acme/api/commit/0123456789abcdef"


class TestRepositorySet:
    """Tests for cloning and describing working copies."""

    @pytest.fixture
    def entries(self) -> list[RepositoryEntry]:
        return [
            RepositoryEntry("api", "https://example.com/api.git"),
            RepositoryEntry("web", "https://example.com/web.git", True),
        ]

    @pytest.fixture
    def repositories(
        self, tmp_path: Path, mock_commands: MagicMock, mock_console: MagicMock
    ) -> RepositorySet:
        return RepositorySet(tmp_path / "workspace", mock_commands, mock_console)

    def test_materialize_clones_in_order(
        self,
        repositories: RepositorySet,
        entries: list[RepositoryEntry],
        mock_commands: MagicMock,
        tmp_path: Path,
    ) -> None:
        cloned = repositories.materialize(entries)

        assert list(cloned) == ["api", "web"]
        assert [call.args for call in mock_commands.git.clone.call_args_list] == [
            ("https://example.com/api.git", tmp_path / "workspace" / "api"),
            ("https://example.com/web.git", tmp_path / "workspace" / "web"),
        ]
        assert cloned["web"].local_path == tmp_path / "workspace" / "web"

    def test_materialize_records_commit_metadata(
        self,
        repositories: RepositorySet,
        entries: list[RepositoryEntry],
        mock_commands: MagicMock,
    ) -> None:
        mock_commands.git.remote_url.return_value = "git@github.com:acme/api.git"

        repositories.materialize(entries)
        info = repositories.describe("api")

        assert info.head_commit_id.startswith("abc1234")
        assert info.head_commit_message == "feat: initial import"
        assert info.web_url == "https://github.com/acme/api"

    def test_metadata_falls_back_when_git_is_silent(
        self,
        repositories: RepositorySet,
        entries: list[RepositoryEntry],
        mock_commands: MagicMock,
    ) -> None:
        mock_commands.git.head_commit.return_value = None
        mock_commands.git.head_message.return_value = None

        repositories.materialize(entries)
        info = repositories.describe("web")

        assert info.head_commit_id == UNKNOWN_COMMIT
        assert info.head_commit_message == NO_COMMIT_MESSAGE
        assert info.web_url == "https://example.com/web"

    def test_existing_directory_is_replaced(
        self,
        repositories: RepositorySet,
        entries: list[RepositoryEntry],
        tmp_path: Path,
    ) -> None:
        """Stale working copies never survive into a new run."""
        stale = tmp_path / "workspace" / "api"
        stale.mkdir(parents=True)
        (stale / "leftover.txt").write_text("old")

        repositories.materialize(entries)

        assert not (stale / "leftover.txt").exists()

    def test_clone_failure_stops_at_failing_entry(
        self,
        repositories: RepositorySet,
        entries: list[RepositoryEntry],
        mock_commands: MagicMock,
    ) -> None:
        mock_commands.git.clone.side_effect = [
            CommandResult(success=False, stderr="fatal: repository not found", returncode=128),
            CommandResult(success=True),
        ]

        with pytest.raises(CloneError) as exc_info:
            repositories.materialize(entries)

        assert exc_info.value.entry == "api"
        assert exc_info.value.details == "fatal: repository not found"
        assert mock_commands.git.clone.call_count == 1

    def test_unremovable_directory_is_a_clone_error(
        self,
        repositories: RepositorySet,
        entries: list[RepositoryEntry],
        mock_commands: MagicMock,
        tmp_path: Path,
    ) -> None:
        (tmp_path / "workspace" / "api").mkdir(parents=True)

        with patch(
            "image_forge.cli.deployment.repository_set.shutil.rmtree",
            side_effect=PermissionError("busy"),
        ):
            with pytest.raises(CloneError) as exc_info:
                repositories.materialize(entries)

        assert exc_info.value.entry == "api"
        assert "busy" in exc_info.value.details
        mock_commands.git.clone.assert_not_called()

    def test_describe_unknown_entry_raises(self, repositories: RepositorySet) -> None:
        with pytest.raises(KeyError):
            repositories.describe("nope")

    def test_adopt_uses_existing_working_copies(
        self,
        repositories: RepositorySet,
        entries: list[RepositoryEntry],
        mock_commands: MagicMock,
        tmp_path: Path,
    ) -> None:
        for entry in entries:
            (tmp_path / "workspace" / entry.name).mkdir(parents=True)

        adopted = repositories.adopt(entries)

        assert list(adopted) == ["api", "web"]
        mock_commands.git.clone.assert_not_called()

    def test_adopt_missing_working_copy_raises(
        self, repositories: RepositorySet, entries: list[RepositoryEntry]
    ) -> None:
        with pytest.raises(CloneError) as exc_info:
            repositories.adopt(entries)

        assert exc_info.value.entry == "api"
