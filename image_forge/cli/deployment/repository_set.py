"""Working copies of the configured repositories.

Every pipeline run clones each entry from empty: any directory already at
the entry's path is removed first, so re-running after a failure always
starts from a known state. Clones happen sequentially in configuration
order and the first failure aborts the run.
"""

from __future__ import annotations

import re
import shutil
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from image_forge.utils.console_like import ConsoleLike, coalesce_console

from .errors import CloneError, DeploymentError

if TYPE_CHECKING:
    from .deploy_config import RepositoryEntry
    from .shell_commands import ShellCommands

UNKNOWN_COMMIT = "unknown"
NO_COMMIT_MESSAGE = "No commit message"

# git@host:owner/repo(.git) and ssh://git@host[:port]/owner/repo(.git)
_SCP_REMOTE = re.compile(r"^[\w.-]+@(?P<host>[\w.-]+):(?P<path>[^/].*?)(?:\.git)?/?$")
_SSH_REMOTE = re.compile(
    r"^ssh://(?:[\w.-]+@)?(?P<host>[\w.-]+)(?::\d+)?/(?P<path>.+?)(?:\.git)?/?$"
)
# https://[user@]host/owner/repo(.git)
_HTTP_REMOTE = re.compile(
    r"^(?P<scheme>https?)://(?:[^@/]+@)?(?P<host>[^/]+)/(?P<path>.+?)(?:\.git)?/?$"
)


def to_web_url(remote_url: str) -> str:
    """Translate a git remote URL into a browsable web URL.

    SSH-style (``git@github.com:acme/api.git``, ``ssh://git@host/acme/api.git``)
    and HTTPS-style (``https://github.com/acme/api.git``) remotes become
    ``https://host/acme/api``. Embedded credentials are dropped. Any other
    shape is returned unchanged.
    """
    remote_url = remote_url.strip()
    for pattern in (_SSH_REMOTE, _SCP_REMOTE):
        match = pattern.match(remote_url)
        if match:
            return f"https://{match['host']}/{match['path']}"
    match = _HTTP_REMOTE.match(remote_url)
    if match:
        return f"{match['scheme']}://{match['host']}/{match['path']}"
    return remote_url


@dataclass(frozen=True)
class CommitInfo:
    """Head revision metadata of a working copy."""

    head_commit_id: str
    head_commit_message: str
    web_url: str

    @property
    def short_id(self) -> str:
        return self.head_commit_id[:8]

    @property
    def commit_url(self) -> str:
        return f"{self.web_url}/commit/{self.head_commit_id}"


@dataclass(frozen=True)
class ClonedRepository:
    """A freshly cloned working copy of one entry."""

    name: str
    source_url: str
    local_path: Path
    commit: CommitInfo

    @property
    def head_commit_id(self) -> str:
        return self.commit.head_commit_id

    @property
    def head_commit_message(self) -> str:
        return self.commit.head_commit_message

    @property
    def web_url(self) -> str:
        return self.commit.web_url


class RepositorySet:
    """Clones and describes the working copies of all configured entries.

    Attributes:
        workspace: Directory holding one working copy per entry name
        commands: Shell command executor
        console: Console for progress output
    """

    def __init__(
        self,
        workspace: Path,
        commands: ShellCommands,
        console: ConsoleLike | None = None,
    ) -> None:
        self.workspace = workspace
        self.commands = commands
        self.console = coalesce_console(console)
        self._cloned: dict[str, ClonedRepository] = {}

    def path_for(self, name: str) -> Path:
        return self.workspace / name

    def materialize(
        self, entries: Iterable[RepositoryEntry]
    ) -> dict[str, ClonedRepository]:
        """Clone every entry from empty, in order.

        Args:
            entries: Repository entries in configuration order

        Returns:
            Mapping of entry name to its cloned working copy, in order

        Raises:
            DeploymentError: If the workspace cannot be created
            CloneError: On the first entry that fails to clone
        """
        self._cloned = {}
        try:
            self.workspace.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise DeploymentError(
                f"Could not create workspace {self.workspace}", details=str(exc)
            ) from exc
        cloned: dict[str, ClonedRepository] = {}

        for entry in entries:
            destination = self.path_for(entry.name)
            try:
                self._remove_existing(destination)
            except OSError as exc:
                raise CloneError(
                    entry.name,
                    entry.source_url,
                    details=f"Could not remove {destination}: {exc}",
                ) from exc

            self.console.info(f"Cloning {entry.name} repository from: {entry.source_url}")
            result = self.commands.git.clone(entry.source_url, destination)
            if not result.success:
                raise CloneError(entry.name, entry.source_url, details=result.output)

            cloned[entry.name] = ClonedRepository(
                name=entry.name,
                source_url=entry.source_url,
                local_path=destination,
                commit=self._inspect(destination, entry.source_url),
            )
            self.console.ok(f"{entry.name} repository cloned successfully")

        self._cloned = cloned
        return dict(cloned)

    def adopt(self, entries: Iterable[RepositoryEntry]) -> dict[str, ClonedRepository]:
        """Describe existing working copies without re-cloning them.

        Used to publish images from repositories cloned by an earlier run.

        Raises:
            CloneError: If an entry has no working copy on disk
        """
        adopted: dict[str, ClonedRepository] = {}
        for entry in entries:
            path = self.path_for(entry.name)
            if not path.is_dir():
                raise CloneError(
                    entry.name,
                    entry.source_url,
                    details=f"No working copy at {path}; run a release first.",
                )
            adopted[entry.name] = ClonedRepository(
                name=entry.name,
                source_url=entry.source_url,
                local_path=path,
                commit=self._inspect(path, entry.source_url),
            )
        self._cloned = adopted
        return dict(adopted)

    def describe(self, name: str) -> CommitInfo:
        """Return head revision metadata for a materialized entry.

        Raises:
            KeyError: If ``name`` has not been materialized in this run
        """
        return self._cloned[name].commit

    def _remove_existing(self, path: Path) -> None:
        if path.is_symlink() or path.is_file():
            path.unlink()
        elif path.exists():
            self.console.info(f"Removing existing directory: {path}")
            shutil.rmtree(path)

    def _inspect(self, path: Path, source_url: str) -> CommitInfo:
        git = self.commands.git
        remote = git.remote_url(path) or source_url
        info = CommitInfo(
            head_commit_id=git.head_commit(path) or UNKNOWN_COMMIT,
            head_commit_message=git.head_message(path) or NO_COMMIT_MESSAGE,
            web_url=to_web_url(remote),
        )
        logger.debug(f"{path.name} at {info.head_commit_id}: {info.head_commit_message}")
        return info
