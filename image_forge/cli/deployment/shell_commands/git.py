"""Git command abstractions.

This module provides commands for Git repository operations: cloning the
configured repositories, reading their head revision for tags and
changelogs, and recording a release in the deployment repository.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from .types import CommandResult

if TYPE_CHECKING:
    from .runner import CommandRunner


class GitCommands:
    """Git-related shell commands.

    Provides operations for:
    - Cloning repositories
    - Revision metadata of working copies
    - Committing, tagging and pushing release markers
    """

    def __init__(self, runner: CommandRunner) -> None:
        """Initialize Git commands.

        Args:
            runner: Command runner for executing shell commands
        """
        self._runner = runner

    # =========================================================================
    # Working Copies
    # =========================================================================

    def clone(self, url: str, destination: Path) -> CommandResult:
        """Clone a remote repository at HEAD into ``destination``.

        Args:
            url: Remote repository URL (HTTPS or SSH)
            destination: Local directory to create

        Returns:
            CommandResult with clone status
        """
        return self._runner.run(
            ["git", "clone", url, str(destination)], cwd=destination.parent
        )

    def short_sha(self, path: Path | None = None) -> str | None:
        """Return the short revision id of HEAD, or None when unresolvable."""
        result = self._runner.run(["git", "rev-parse", "--short", "HEAD"], cwd=path)
        sha = result.stdout.strip()
        return sha if result.success and sha else None

    def head_commit(self, path: Path | None = None) -> str | None:
        """Return the full revision id of HEAD, or None when unresolvable."""
        result = self._runner.run(["git", "rev-parse", "HEAD"], cwd=path)
        sha = result.stdout.strip()
        return sha if result.success and sha else None

    def head_message(self, path: Path | None = None) -> str | None:
        """Return the subject line of the HEAD commit."""
        result = self._runner.run(
            ["git", "log", "-1", "--pretty=format:%s"], cwd=path
        )
        message = result.stdout.strip()
        return message if result.success and message else None

    def remote_url(self, path: Path | None = None, remote: str = "origin") -> str | None:
        """Return the fetch URL of ``remote``, or None when not configured."""
        result = self._runner.run(["git", "remote", "get-url", remote], cwd=path)
        url = result.stdout.strip()
        return url if result.success and url else None

    # =========================================================================
    # Release Markers
    # =========================================================================

    def add(self, paths: Sequence[str], cwd: Path | None = None) -> CommandResult:
        """Stage files for commit."""
        return self._runner.run(["git", "add", *paths], cwd=cwd)

    def has_staged_changes(self, cwd: Path | None = None) -> bool:
        """Check whether the index differs from HEAD.

        ``git diff --staged --quiet`` exits 1 when there are staged changes.
        """
        result = self._runner.run(["git", "diff", "--staged", "--quiet"], cwd=cwd)
        return result.returncode == 1

    def commit(self, message: str, cwd: Path | None = None) -> CommandResult:
        """Commit staged changes with ``message``."""
        return self._runner.run(["git", "commit", "-m", message], cwd=cwd)

    def tag(self, name: str, message: str, cwd: Path | None = None) -> CommandResult:
        """Create an annotated tag at HEAD."""
        return self._runner.run(["git", "tag", "-a", name, "-m", message], cwd=cwd)

    def push(
        self, refspec: str = "HEAD", remote: str = "origin", cwd: Path | None = None
    ) -> CommandResult:
        """Push ``refspec`` to ``remote``."""
        return self._runner.run(["git", "push", remote, refspec], cwd=cwd)
