"""Container registry backends.

A registry backend supplies the three capabilities the image publisher
needs: where to log in, how to form an image path, and whether to log out
after pushing. Adding a registry means adding a ``RegistryTarget``
subclass and registering it in ``_TARGET_FACTORIES``; the publisher's
control flow does not change.

Credential models are validated with pydantic. Owner, organization and team
names are lowercased on construction, since registries reject uppercase
repository paths.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping

from pydantic import BaseModel, ConfigDict, field_validator

from .deploy_config import RegistryKind
from .errors import ConfigurationError

_GITHUB_OWNER = re.compile(r"github\.com[:/]([^/]+)/([^/]+?)(?:\.git)?/?$")


def owner_from_remote(remote_url: str | None) -> str | None:
    """Extract the repository owner from a GitHub remote URL (SSH or HTTPS)."""
    if not remote_url:
        return None
    match = _GITHUB_OWNER.search(remote_url.strip())
    return match.group(1) if match else None


def _lower(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip().lower() or None


class RegistryTarget(BaseModel, ABC):
    """Capability set of one registry backend."""

    model_config = ConfigDict(frozen=True)

    #: Canonical registry kind
    kind: RegistryKind
    #: Registry host that image paths start with
    host: str
    #: Whether to log out once pushing has finished
    logout_after_push: bool = True

    @property
    def login_server(self) -> str:
        """Server passed to ``docker login`` and ``docker logout``."""
        return self.host

    @property
    @abstractmethod
    def username(self) -> str:
        """User name used to authenticate."""

    @property
    @abstractmethod
    def secret(self) -> str:
        """Token or password used to authenticate."""

    @abstractmethod
    def image_path(self, image_name: str) -> str:
        """Fully qualified repository path for ``image_name`` (without tag)."""

    @abstractmethod
    def missing_credentials(self) -> list[str]:
        """Names of required credential variables that are not set."""

    def require_credentials(self) -> None:
        """Refuse to authenticate without the required credentials.

        Raises:
            ConfigurationError: If any required credential is missing
        """
        missing = self.missing_credentials()
        if missing:
            raise ConfigurationError(
                f"Missing credentials for {self.host}: {', '.join(missing)}",
                details="Set them in the environment or in the project's .env file.",
            )

    def describe(self) -> str:
        """Human readable target description (never includes secrets)."""
        return f"{self.host} as {self.username or '<unset>'}"


class GitHubRegistry(RegistryTarget):
    """GitHub Container Registry: ``ghcr.io/<owner>/<image>``."""

    kind: RegistryKind = RegistryKind.GHCR
    host: str = "ghcr.io"
    owner: str
    actor: str | None = None
    token: str = ""

    @field_validator("owner", mode="before")
    @classmethod
    def _lowercase_owner(cls, value: str) -> str:
        owner = _lower(value)
        if not owner:
            raise ValueError("repository owner must not be empty")
        return owner

    @field_validator("actor", mode="before")
    @classmethod
    def _blank_actor(cls, value: str | None) -> str | None:
        return (value or "").strip() or None

    @property
    def username(self) -> str:
        return self.actor or self.owner

    @property
    def secret(self) -> str:
        return self.token

    def image_path(self, image_name: str) -> str:
        return f"{self.host}/{self.owner}/{image_name}"

    def missing_credentials(self) -> list[str]:
        return [] if self.token else ["GITHUB_TOKEN"]


class QuayRegistry(RegistryTarget):
    """Quay.io: ``quay.io/[<organization>/[<team>/]]<image>``."""

    kind: RegistryKind = RegistryKind.QUAY
    host: str = "quay.io"
    organization: str | None = None
    team: str | None = None
    user: str = ""
    password: str = ""

    @field_validator("organization", "team", mode="before")
    @classmethod
    def _lowercase_segments(cls, value: str | None) -> str | None:
        return _lower(value)

    @property
    def username(self) -> str:
        return self.user

    @property
    def secret(self) -> str:
        return self.password

    def image_path(self, image_name: str) -> str:
        # A team is only meaningful inside an organization
        segments = [self.host]
        if self.organization:
            segments.append(self.organization)
            if self.team:
                segments.append(self.team)
        segments.append(image_name)
        return "/".join(segments)

    def missing_credentials(self) -> list[str]:
        missing = []
        if not self.user:
            missing.append("QUAY_USER")
        if not self.password:
            missing.append("QUAY_PASSWORD")
        return missing


def _github_from_env(
    environ: Mapping[str, str], detected_owner: str | None
) -> RegistryTarget:
    owner = environ.get("GITHUB_REPOSITORY_OWNER") or detected_owner
    if not owner or not owner.strip():
        raise ConfigurationError(
            "GITHUB_REPOSITORY_OWNER is required for ghcr.io",
            details="It could not be auto-detected from the git remote. "
            "Set GITHUB_REPOSITORY_OWNER to the user or organization owning the images.",
        )
    return GitHubRegistry(
        owner=owner,
        actor=environ.get("GITHUB_ACTOR"),
        token=environ.get("GITHUB_TOKEN", ""),
    )


def _quay_from_env(
    environ: Mapping[str, str], detected_owner: str | None
) -> RegistryTarget:
    return QuayRegistry(
        organization=environ.get("QUAY_ORGANIZATION"),
        team=environ.get("QUAY_TEAM"),
        user=environ.get("QUAY_USER", ""),
        password=environ.get("QUAY_PASSWORD", ""),
    )


_TARGET_FACTORIES: dict[
    RegistryKind, Callable[[Mapping[str, str], str | None], RegistryTarget]
] = {
    RegistryKind.GHCR: _github_from_env,
    RegistryKind.QUAY: _quay_from_env,
}


def build_registry_target(
    kind: RegistryKind,
    environ: Mapping[str, str],
    *,
    detected_owner: str | None = None,
) -> RegistryTarget:
    """Create the registry target for ``kind`` from environment credentials.

    Args:
        kind: Canonical registry kind from the resolved configuration
        environ: Environment holding registry credentials
        detected_owner: Owner inferred from the deployment repository's remote,
                        used when GITHUB_REPOSITORY_OWNER is unset

    Returns:
        The registry target

    Raises:
        ConfigurationError: If the registry cannot be addressed
    """
    return _TARGET_FACTORIES[kind](environ, detected_owner)
