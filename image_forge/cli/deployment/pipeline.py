"""Multi-repository deployment pipeline.

The pipeline runs linearly through these states::

    INIT -> CONFIG_RESOLVED -> VERSION_BUMPED -> REPOSITORIES_MATERIALIZED
         -> PUBLISHED -> COMMITTED (commit mode) | REPORTED (dry-run mode)

Any step may instead end in FAILED. Failures are fatal to the run and are
raised as ``PipelineError`` naming the step and, where relevant, the entry.
Everything is sequential: entries are cloned and then published in their
declared order, and the first failure stops the run.

Dry-run mode performs every read-only and build step but never logs in,
pushes, writes the version file or touches source control.
"""

from __future__ import annotations

import os
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from dotenv import load_dotenv
from loguru import logger

from image_forge.utils.console_like import ConsoleLike, coalesce_console

from .changelog import ChangelogWriter, EntryReport, ReleaseReport, render_commit_message
from .constants import DeploymentConstants, DeploymentPaths
from .deploy_config import RegistryKind, ResolvedConfig, load_deploy_config
from .errors import DeploymentError, PipelineError, SourceControlError
from .image_publisher import ImagePublisher, PublishResult
from .registries import RegistryTarget, build_registry_target, owner_from_remote
from .repository_set import ClonedRepository, RepositorySet
from .version_store import BumpKind, SemanticVersion, VersionStore

if TYPE_CHECKING:
    from .shell_commands import ShellCommands


class PipelineState(str, Enum):
    """States of a deployment run."""

    INIT = "init"
    CONFIG_RESOLVED = "config-resolved"
    VERSION_BUMPED = "version-bumped"
    REPOSITORIES_MATERIALIZED = "repositories-materialized"
    PUBLISHED = "published"
    COMMITTED = "committed"
    REPORTED = "reported"
    FAILED = "failed"


class PipelineStep(str, Enum):
    """Named steps, used to report where a run failed."""

    RESOLVE_CONFIG = "resolve-config"
    BUMP_VERSION = "bump-version"
    CLONE = "clone-repositories"
    PUBLISH = "publish-images"
    COMMIT = "commit-release"


@dataclass
class PipelineResult:
    """Outcome of a successful run."""

    state: PipelineState
    report: ReleaseReport
    config: ResolvedConfig
    target: RegistryTarget
    published: list[PublishResult] = field(default_factory=list)


class DeploymentPipeline:
    """Orchestrates version bump, cloning, publishing and release recording.

    Attributes:
        commands: Shell command executor
        console: Console for output
        paths: Deployment path resolver
        environ: Environment supplying credentials and fallbacks
        state: Current pipeline state
    """

    def __init__(
        self,
        commands: ShellCommands,
        console: ConsoleLike | None,
        paths: DeploymentPaths,
        *,
        environ: Mapping[str, str] | None = None,
        constants: DeploymentConstants | None = None,
        version_store: VersionStore | None = None,
        repositories: RepositorySet | None = None,
        publisher: ImagePublisher | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            commands: Shell command executor
            console: Console for output
            paths: Deployment path resolver
            environ: Environment mapping (defaults to os.environ after loading .env)
            constants: Optional deployment constants (uses defaults if not provided)
            version_store: Override the version store (defaults to version.txt)
            repositories: Override the repository set (defaults to the workspace)
            publisher: Override the image publisher (built from config when None)
        """
        self.commands = commands
        self.console = coalesce_console(console)
        self.paths = paths
        self.constants = constants or DeploymentConstants()
        if environ is None:
            # Load .env so registry credentials and *_REPO_URL variables are available
            load_dotenv(paths.env_file, override=False)
            environ = os.environ
        self.environ = environ
        self.version_store = version_store or VersionStore(
            paths.version_file, self.console, self.constants
        )
        self.repositories = repositories or RepositorySet(
            paths.workspace, commands, self.console
        )
        self._publisher = publisher
        self.state = PipelineState.INIT
        self.failed_step: PipelineStep | None = None

    # =========================================================================
    # Entry Points
    # =========================================================================

    def run(
        self,
        bump: BumpKind | str = BumpKind.PATCH,
        *,
        dry_run: bool = False,
        additional_tag: str | None = None,
    ) -> PipelineResult:
        """Run the full release pipeline.

        Args:
            bump: Version bump kind
            dry_run: Compute and report without pushing or persisting
            additional_tag: Extra image tag (defaults to ADDITIONAL_TAG)

        Returns:
            PipelineResult in the COMMITTED or REPORTED state

        Raises:
            PipelineError: On the first failing step
        """
        bump = BumpKind(bump)
        self.state = PipelineState.INIT
        self.failed_step = None
        if dry_run:
            self.console.info("Running in TEST MODE - no commits or pushes will be made")

        with self._step(PipelineStep.RESOLVE_CONFIG):
            config, target = self._resolve(dry_run)
            self.state = PipelineState.CONFIG_RESOLVED

        with self._step(PipelineStep.BUMP_VERSION):
            current = self.version_store.read(create=not dry_run)
            new_version = self.version_store.bump(current, bump)
            self.console.info(f"Version: {current} -> {new_version} ({bump.value})")
            self.state = PipelineState.VERSION_BUMPED

        with self._step(PipelineStep.CLONE):
            cloned = self.repositories.materialize(config.entries)
            self.state = PipelineState.REPOSITORIES_MATERIALIZED

        with self._step(PipelineStep.PUBLISH):
            published = self._publish_all(
                config, target, cloned, new_version, additional_tag, dry_run
            )
            self.state = PipelineState.PUBLISHED

        report = self._build_report(
            config, cloned, published, str(current), str(new_version), bump.value, dry_run
        )

        if dry_run:
            self.state = PipelineState.REPORTED
            self.console.info(f"Generated version: {new_version} (not committed)")
        else:
            with self._step(PipelineStep.COMMIT):
                self._commit(new_version, report)
                self.state = PipelineState.COMMITTED
            self.console.ok(f"Deployment completed: version {new_version}")

        return PipelineResult(
            state=self.state,
            report=report,
            config=config,
            target=target,
            published=published,
        )

    def publish_existing(
        self, *, dry_run: bool = False, additional_tag: str | None = None
    ) -> PipelineResult:
        """Publish images from working copies cloned by an earlier run.

        The version is read, not bumped, and nothing is committed.

        Raises:
            PipelineError: On the first failing step
        """
        self.state = PipelineState.INIT
        self.failed_step = None

        with self._step(PipelineStep.RESOLVE_CONFIG):
            config, target = self._resolve(dry_run)
            self.state = PipelineState.CONFIG_RESOLVED

        with self._step(PipelineStep.BUMP_VERSION):
            version = self.version_store.read(create=False)
            self.state = PipelineState.VERSION_BUMPED

        with self._step(PipelineStep.CLONE):
            cloned = self.repositories.adopt(config.entries)
            self.state = PipelineState.REPOSITORIES_MATERIALIZED

        with self._step(PipelineStep.PUBLISH):
            published = self._publish_all(
                config, target, cloned, version, additional_tag, dry_run
            )
            self.state = PipelineState.PUBLISHED

        self.state = PipelineState.REPORTED
        report = self._build_report(
            config, cloned, published, str(version), str(version), "none", dry_run
        )
        return PipelineResult(
            state=self.state,
            report=report,
            config=config,
            target=target,
            published=published,
        )

    # =========================================================================
    # Steps
    # =========================================================================

    @contextmanager
    def _step(self, step: PipelineStep) -> Iterator[None]:
        logger.debug(f"Entering step {step.value}")
        try:
            yield
        except DeploymentError as exc:
            self.state = PipelineState.FAILED
            self.failed_step = step
            raise PipelineError(step.value, exc) from exc
        except OSError as exc:
            self.state = PipelineState.FAILED
            self.failed_step = step
            cause = DeploymentError("Unexpected filesystem error", details=str(exc))
            raise PipelineError(step.value, cause) from exc

    def _resolve(self, dry_run: bool) -> tuple[ResolvedConfig, RegistryTarget]:
        config = load_deploy_config(
            self.paths.config_file, self.environ, self.console, self.constants
        )
        kind = config.require_registry()
        entries = config.require_entries()

        self.console.info(f"Configured repositories ({config.source.value}):")
        for entry in entries:
            certs = " [needs certificates]" if entry.needs_certificates else ""
            self.console.info(f"  - {entry.name}: {entry.source_url}{certs}")

        detected_owner = None
        if kind is RegistryKind.GHCR and not self.environ.get("GITHUB_REPOSITORY_OWNER"):
            detected_owner = owner_from_remote(
                self.commands.git.remote_url(self.paths.project_root)
            )
            if detected_owner:
                self.console.info(f"Auto-detected repository owner: {detected_owner}")

        target = build_registry_target(kind, self.environ, detected_owner=detected_owner)
        if not dry_run:
            target.require_credentials()
        self.console.info(f"Docker registry: {target.describe()}")
        return config, target

    def _publisher_for(self, config: ResolvedConfig) -> ImagePublisher:
        if self._publisher is not None:
            return self._publisher
        return ImagePublisher(
            self.commands,
            self.console,
            assets_dir=self.paths.assets_dir,
            cert_install_path=config.cert_install_path,
            dockerfile=self.environ.get("DOCKERFILE_PATH") or None,
            sha_tags=self.environ.get("SHA_TAG", "true").strip().lower() != "false",
            constants=self.constants,
        )

    def _publish_all(
        self,
        config: ResolvedConfig,
        target: RegistryTarget,
        cloned: Mapping[str, ClonedRepository],
        version: SemanticVersion,
        additional_tag: str | None,
        dry_run: bool,
    ) -> list[PublishResult]:
        publisher = self._publisher_for(config)
        extra_tag = additional_tag or self.environ.get("ADDITIONAL_TAG") or None
        results: list[PublishResult] = []
        for entry in config.entries:
            self.console.info(f"Publishing {entry.name} to {target.host}...")
            results.append(
                publisher.publish(
                    entry,
                    target,
                    version,
                    cloned[entry.name].local_path,
                    additional_tag=extra_tag,
                    dry_run=dry_run,
                )
            )
        return results

    def _build_report(
        self,
        config: ResolvedConfig,
        cloned: Mapping[str, ClonedRepository],
        published: list[PublishResult],
        previous: str,
        new: str,
        bump: str,
        dry_run: bool,
    ) -> ReleaseReport:
        by_entry = {result.entry: result for result in published}
        entries = []
        for entry in config.entries:
            repo = cloned[entry.name]
            result = by_entry.get(entry.name)
            entries.append(
                EntryReport(
                    name=entry.name,
                    source_url=entry.source_url,
                    commit=repo.commit,
                    tags=tuple(result.tags) if result else (),
                    pushed_tags=tuple(result.pushed_tags) if result else (),
                    certificates_installed=bool(result and result.certificates_installed),
                )
            )
        return ReleaseReport(
            previous_version=previous,
            new_version=new,
            bump_kind=bump,
            registry=config.registry_selector,
            dry_run=dry_run,
            entries=tuple(entries),
        )

    def _commit(self, version: SemanticVersion, report: ReleaseReport) -> None:
        self.version_store.write(version)
        self.console.ok(f"Version updated to: {version}")

        writer = ChangelogWriter(self.paths, self.constants)
        try:
            writer.update_readme(report)
            writer.write_release_changelog(report)
            writer.write_deployment_env(report)
            writer.write_step_outputs(report, self.environ.get("GITHUB_OUTPUT"))
        except OSError as exc:
            raise DeploymentError("Could not write release files", str(exc)) from exc
        self.console.ok("Changelog and deployment.env updated")

        self._record_release(report)

    def _record_release(self, report: ReleaseReport) -> None:
        git = self.commands.git
        root = self.paths.project_root
        files = [self.constants.VERSION_FILE, self.constants.README_FILE]

        result = git.add(files, cwd=root)
        if not result.success:
            raise SourceControlError("Could not stage release files", result.output)

        if not git.has_staged_changes(cwd=root):
            self.console.warn("No version changes to commit")
            return

        result = git.commit(render_commit_message(report), cwd=root)
        if not result.success:
            raise SourceControlError("Could not commit version update", result.output)

        result = git.tag(report.tag_name, f"Release {report.new_version}", cwd=root)
        if not result.success:
            raise SourceControlError(
                f"Could not create tag {report.tag_name}", result.output
            )
        self.console.ok(f"Committed and tagged {report.tag_name}")

        if not self.environ.get("GITHUB_TOKEN"):
            self.console.warn("GITHUB_TOKEN not set, skipping push to remote")
            self.console.info(
                f"To push manually, run: git push origin HEAD {report.tag_name}"
            )
            return

        for refspec in ("HEAD", report.tag_name):
            result = git.push(refspec, cwd=root)
            if not result.success:
                raise SourceControlError(f"Could not push {refspec}", result.output)
        self.console.ok("Version update pushed successfully")
