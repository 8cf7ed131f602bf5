"""Docker image building, certificate injection and publishing.

This module handles the image lifecycle for one repository entry:
- Computing the registry-qualified tag set
- Building the image once with every tag applied
- Authenticating against the registry with bounded retries
- Installing trust certificates into the built image when requested
- Pushing every tag, stopping at the first failure
- Logging out again, even when something failed
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger
from rich.markup import escape

from image_forge.utils.console_like import ConsoleLike, coalesce_console

from .certificates import CertificateBundle, CertificateInjector
from .constants import DeploymentConstants
from .errors import AuthenticationError, BuildError, PushError

if TYPE_CHECKING:
    from .deploy_config import RepositoryEntry
    from .registries import RegistryTarget
    from .shell_commands import ShellCommands
    from .version_store import SemanticVersion


@dataclass(frozen=True)
class ImageTagSet:
    """Ordered, registry-qualified tags for one built image.

    Attributes:
        image_path: Registry path without tag (e.g., "ghcr.io/acme/api")
        tags: Fully qualified tags in insertion order
        short_sha: Source revision used for the ``sha-`` tag, if any
    """

    image_path: str
    tags: tuple[str, ...]
    short_sha: str | None = None

    def __iter__(self) -> Iterator[str]:
        return iter(self.tags)

    def __len__(self) -> int:
        return len(self.tags)

    @property
    def suffixes(self) -> list[str]:
        """Tag names without the image path (e.g., ["latest", "sha-abc1234"])."""
        return [tag.rsplit(":", 1)[1] for tag in self.tags]


def compute_tag_set(
    entry: RepositoryEntry,
    target: RegistryTarget,
    *,
    short_sha: str | None = None,
    additional_tag: str | None = None,
) -> ImageTagSet:
    """Compute the tag set for an entry.

    ``latest`` is always present, ``sha-<short_sha>`` when a revision is
    known and ``<additional_tag>`` when a non-empty value is supplied.
    """
    image_path = target.image_path(entry.name)
    suffixes = ["latest"]
    if short_sha:
        suffixes.append(f"sha-{short_sha}")
    extra = (additional_tag or "").strip()
    if extra and extra not in suffixes:
        suffixes.append(extra)
    return ImageTagSet(
        image_path=image_path,
        tags=tuple(f"{image_path}:{suffix}" for suffix in suffixes),
        short_sha=short_sha,
    )


@dataclass
class PublishResult:
    """Outcome of publishing one entry.

    Attributes:
        entry: Entry name
        tags: Every tag applied to the built image
        pushed_tags: Tags pushed to the registry (empty in dry-run mode)
        certificates_installed: Whether a certificate layer was added
        dry_run: Whether login, certificates and push were skipped
    """

    entry: str
    tags: list[str]
    pushed_tags: list[str] = field(default_factory=list)
    certificates_installed: bool = False
    dry_run: bool = False


class ImagePublisher:
    """Builds and publishes one image per repository entry.

    Attributes:
        commands: Shell command executor
        console: Console for output
        assets_dir: Directory scanned for certificate files
        cert_install_path: Certificate directory inside images
        dockerfile: Build manifest path relative to each build context
        sha_tags: Whether to add the ``sha-<short sha>`` tag
        constants: Deployment configuration constants
    """

    def __init__(
        self,
        commands: ShellCommands,
        console: ConsoleLike | None = None,
        *,
        assets_dir: Path,
        cert_install_path: str | None = None,
        dockerfile: str | None = None,
        sha_tags: bool = True,
        constants: DeploymentConstants | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the image publisher.

        Args:
            commands: Shell command executor
            console: Console for output
            assets_dir: Directory scanned for certificate files
            cert_install_path: Certificate directory inside images
            dockerfile: Build manifest path relative to each build context
            sha_tags: Whether to add the ``sha-<short sha>`` tag
            constants: Optional deployment constants (uses defaults if not provided)
            sleep: Delay function used between login attempts
        """
        self.commands = commands
        self.console = coalesce_console(console)
        self.constants = constants or DeploymentConstants()
        self.assets_dir = assets_dir
        self.cert_install_path = (
            cert_install_path or self.constants.DEFAULT_CERT_INSTALL_PATH
        )
        self.dockerfile = dockerfile or self.constants.DEFAULT_DOCKERFILE
        self.sha_tags = sha_tags
        self._sleep = sleep
        self._injector = CertificateInjector(commands, self.console)

    # =========================================================================
    # Public API
    # =========================================================================

    def compute_tags(
        self,
        entry: RepositoryEntry,
        target: RegistryTarget,
        context: Path,
        additional_tag: str | None = None,
    ) -> ImageTagSet:
        """Compute the tag set for ``entry`` built from ``context``."""
        short_sha = self._short_sha(context) if self.sha_tags else None
        return compute_tag_set(
            entry, target, short_sha=short_sha, additional_tag=additional_tag
        )

    def publish(
        self,
        entry: RepositoryEntry,
        target: RegistryTarget,
        version: SemanticVersion,
        context: Path,
        *,
        additional_tag: str | None = None,
        dry_run: bool = False,
    ) -> PublishResult:
        """Build, optionally certify, and push one image.

        Args:
            entry: Repository entry to publish
            target: Registry receiving the image
            version: Release version recorded in the image labels
            context: Build context (the entry's working copy)
            additional_tag: Optional extra tag
            dry_run: Build and tag locally, skip login, certificates and push

        Returns:
            PublishResult describing the tags built and pushed

        Raises:
            BuildError: If the manifest is missing or the build fails
            ConfigurationError: If registry credentials are missing
            AuthenticationError: If login keeps failing
            CertificateInjectionError: If certificates cannot be installed
            PushError: On the first tag that fails to push
        """
        tag_set = self.compute_tags(entry, target, context, additional_tag)
        self.console.info(f"Registry path: {tag_set.image_path}")
        self.console.info(f"Tags to be applied: {', '.join(tag_set.suffixes)}")

        self._build(entry, context, tag_set, version)
        result = PublishResult(entry=entry.name, tags=list(tag_set.tags))

        if dry_run:
            result.dry_run = True
            self._report_dry_run(entry, target, tag_set)
            return result

        target.require_credentials()
        self._login(entry, target)
        try:
            result.certificates_installed = self._install_certificates(entry, tag_set)
            result.pushed_tags = self._push(entry, target, tag_set)
        finally:
            if target.logout_after_push:
                self._logout(target)

        self.console.ok(f"All {entry.name} images pushed to {target.host}")
        return result

    # =========================================================================
    # Steps
    # =========================================================================

    def _short_sha(self, context: Path) -> str | None:
        short_sha = self.commands.git.short_sha(context)
        if short_sha:
            self.console.info(f"Adding SHA tag: sha-{short_sha}")
        else:
            self.console.warn(
                f"No git revision available in {context}, skipping SHA tag"
            )
        return short_sha

    def _build(
        self,
        entry: RepositoryEntry,
        context: Path,
        tag_set: ImageTagSet,
        version: SemanticVersion,
    ) -> None:
        dockerfile = context / self.dockerfile
        if not dockerfile.is_file():
            raise BuildError(
                entry.name,
                f"Dockerfile not found for '{entry.name}': {dockerfile}",
                details="Each repository must provide a build manifest at the root "
                "of its working copy (set DOCKERFILE_PATH to use another path).",
            )

        labels = {
            "org.opencontainers.image.version": str(version),
            "org.opencontainers.image.source": entry.source_url,
        }
        if tag_set.short_sha:
            labels["org.opencontainers.image.revision"] = tag_set.short_sha

        self.console.info(f"Building Docker image for {entry.name}...")
        result = self.commands.docker.build(
            context,
            dockerfile,
            list(tag_set.tags),
            labels=labels,
            on_output=lambda line: logger.debug(f"[build:{entry.name}] {line}"),
        )
        if not result.success:
            raise BuildError(
                entry.name,
                f"Docker build failed for '{entry.name}'",
                details=result.tail(),
            )
        self.console.ok(f"Docker image built for {entry.name}")

    def _report_dry_run(
        self, entry: RepositoryEntry, target: RegistryTarget, tag_set: ImageTagSet
    ) -> None:
        self.console.info("DRY RUN - login and push commands that would be executed:")
        self.console.print(
            f"[dim]docker login {escape(target.login_server)} "
            f"-u {escape(target.username)} -p [HIDDEN][/dim]"
        )
        if entry.needs_certificates:
            self.console.print(
                f"[dim]install certificates into {escape(self.cert_install_path)}[/dim]"
            )
        for tag in tag_set:
            self.console.print(f"[dim]docker push {escape(tag)}[/dim]")

    def _login(self, entry: RepositoryEntry, target: RegistryTarget) -> None:
        attempts = self.constants.LOGIN_ATTEMPTS
        last_output = ""
        for attempt in range(1, attempts + 1):
            logger.debug(f"Docker login attempt {attempt}/{attempts} for {target.host}")
            result = self.commands.docker.login(
                target.login_server, target.username, target.secret
            )
            if result.success:
                self.console.ok(f"Logged in to {target.login_server}")
                return
            last_output = result.output
            if attempt < attempts:
                self.console.warn(
                    f"Login attempt {attempt} failed, retrying in "
                    f"{self.constants.LOGIN_BACKOFF_SECONDS:g} seconds..."
                )
                self._sleep(self.constants.LOGIN_BACKOFF_SECONDS)

        raise AuthenticationError(
            entry.name,
            f"Failed to login to {target.login_server} after {attempts} attempts",
            details=last_output or None,
        )

    def _install_certificates(
        self, entry: RepositoryEntry, tag_set: ImageTagSet
    ) -> bool:
        if not entry.needs_certificates:
            logger.debug(f"{entry.name} does not require certificates")
            return False

        bundle = CertificateBundle.discover(self.assets_dir, self.constants)
        if not bundle:
            self.console.warn(
                f"{entry.name} requires certificates but none were found in "
                f"{self.assets_dir}; publishing without them"
            )
            return False

        self._injector.inject(
            entry.name, tag_set.tags, bundle, self.cert_install_path
        )
        return True

    def _push(
        self, entry: RepositoryEntry, target: RegistryTarget, tag_set: ImageTagSet
    ) -> list[str]:
        self.console.info(f"Pushing images to {target.host}...")
        pushed: list[str] = []
        for tag in tag_set:
            self.console.info(f"Pushing: {tag}")
            result = self.commands.docker.push_image(tag)
            if not result.success:
                raise PushError(entry.name, tag, details=result.tail() or None)
            pushed.append(tag)
            self.console.ok(f"Successfully pushed: {tag}")
        return pushed

    def _logout(self, target: RegistryTarget) -> None:
        result = self.commands.docker.logout(target.login_server)
        if result.success:
            self.console.info(f"Logged out from {target.login_server}")
        else:
            self.console.warn(
                f"Logout from {target.login_server} failed: {result.output}"
            )
