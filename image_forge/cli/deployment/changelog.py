"""Release reports and changelog files.

A ``ReleaseReport`` summarizes one pipeline run: the version transition,
each entry's head commit and the tags built or pushed. Commit mode renders
it into the README changelog section, ``release_changelog.md``,
``deployment.env`` and CI step outputs. Dry-run mode only renders it for
display.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from uuid import uuid4

from loguru import logger

from .constants import DeploymentConstants, DeploymentPaths
from .repository_set import CommitInfo


@dataclass(frozen=True)
class EntryReport:
    """Per-entry section of a release report."""

    name: str
    source_url: str
    commit: CommitInfo
    tags: tuple[str, ...] = ()
    pushed_tags: tuple[str, ...] = ()
    certificates_installed: bool = False

    @property
    def display_name(self) -> str:
        return self.name[:1].upper() + self.name[1:]


@dataclass(frozen=True)
class ReleaseReport:
    """Summary of one deployment run."""

    previous_version: str
    new_version: str
    bump_kind: str
    registry: str
    dry_run: bool
    entries: tuple[EntryReport, ...] = ()
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def timestamp(self) -> str:
        return self.created_at.strftime("%Y-%m-%d %H:%M:%S")

    @property
    def tag_name(self) -> str:
        return f"v{self.new_version}"


def render_readme_entry(report: ReleaseReport) -> str:
    """Render the changelog entry inserted under the README heading."""
    lines = [
        f"### Version {report.new_version} - {report.timestamp}",
        "",
        f"- **Version**: {report.new_version}",
        f"- **Type**: {report.bump_kind} version bump",
        f"- **Docker Registry**: {report.registry}",
        "",
    ]
    for entry in report.entries:
        lines += [
            f"#### {entry.display_name} Repository",
            f"- **Commit**: [`{entry.commit.short_id}`]({entry.commit.commit_url})",
            f"- **Message**: {entry.commit.head_commit_message}",
            "",
        ]
    lines.append("---")
    return "\n".join(lines) + "\n"


def render_release_changelog(report: ReleaseReport) -> str:
    """Render the release notes consumed by CI release jobs."""
    lines = [
        f"## Version {report.new_version} - {report.timestamp}",
        "",
        f"**Version Bump**: {report.bump_kind}",
        "",
    ]
    for entry in report.entries:
        lines += [
            f"### {entry.display_name} Repository",
            f"- **Commit**: [`{entry.commit.short_id}`]({entry.commit.commit_url})",
            f"- **Message**: {entry.commit.head_commit_message}",
            f"- **Repository**: {entry.commit.web_url}",
        ]
        if entry.pushed_tags:
            lines.append(f"- **Images**: {', '.join(entry.pushed_tags)}")
        elif entry.tags:
            lines.append(f"- **Images (not pushed)**: {', '.join(entry.tags)}")
        lines.append("")
    lines += [
        "### Deployment Information",
        f"- **Deployment Date**: {report.timestamp}",
        f"- **Version Bump Type**: {report.bump_kind}",
        f"- **Previous Version**: {report.previous_version}",
        f"- **New Version**: {report.new_version}",
        f"- **Docker Registry**: {report.registry}",
    ]
    return "\n".join(lines) + "\n"


def render_commit_message(report: ReleaseReport) -> str:
    """Render the release commit message for the deployment repository."""
    repo_lines = "\n".join(
        f"- {entry.name} repo: {entry.source_url}" for entry in report.entries
    )
    return (
        f"chore: bump version to {report.new_version}\n\n"
        f"- Version bump type: {report.bump_kind}\n"
        f"- New version: {report.new_version}\n"
        "- Updated changelog in README.md with commit info from all repositories\n"
        f"- Docker registry: {report.registry}\n\n"
        f"Configured repositories:\n{repo_lines}\n"
    )


def render_deployment_env(report: ReleaseReport) -> str:
    """Render deployment.env for downstream scripts to source."""
    lines = [
        "# Deployment configuration generated by image-forge",
        f"# Generated on: {report.timestamp}",
        "",
        f"VERSION={report.new_version}",
        f"PREVIOUS_VERSION={report.previous_version}",
        f"VERSION_BUMP={report.bump_kind}",
        "",
        f"DOCKER_REGISTRY={report.registry}",
        "",
    ]
    lines += [
        f"{entry.name.upper()}_REPO_URL={entry.source_url}" for entry in report.entries
    ]
    lines.append(f"REPO_NAMES={' '.join(entry.name for entry in report.entries)}")
    return "\n".join(lines) + "\n"


def insert_changelog_entry(readme: str | None, entry: str, heading: str) -> str:
    """Insert ``entry`` directly below ``heading``, newest first.

    A missing README gets a minimal document; a README without the heading
    gets the section appended.
    """
    if readme is None:
        return (
            "# Deployment Repository\n\n"
            "This repository contains deployment configurations and scripts.\n\n"
            f"{heading}\n\n{entry}"
        )

    lines = readme.splitlines(keepends=True)
    for index, line in enumerate(lines):
        if line.rstrip("\r\n") == heading:
            return "".join(lines[: index + 1]) + f"\n{entry}" + "".join(lines[index + 1 :])

    separator = "" if readme.endswith("\n") or not readme else "\n"
    return f"{readme}{separator}\n{heading}\n\n{entry}"


class ChangelogWriter:
    """Writes the release files of commit mode."""

    def __init__(
        self, paths: DeploymentPaths, constants: DeploymentConstants | None = None
    ) -> None:
        self.paths = paths
        self.constants = constants or DeploymentConstants()

    def update_readme(self, report: ReleaseReport) -> Path:
        """Insert this release at the top of the README changelog section."""
        readme = self.paths.readme
        existing = readme.read_text(encoding="utf-8") if readme.exists() else None
        readme.write_text(
            insert_changelog_entry(
                existing, render_readme_entry(report), self.constants.CHANGELOG_HEADING
            ),
            encoding="utf-8",
        )
        return readme

    def write_release_changelog(self, report: ReleaseReport) -> Path:
        path = self.paths.release_changelog
        path.write_text(render_release_changelog(report), encoding="utf-8")
        return path

    def write_deployment_env(self, report: ReleaseReport) -> Path:
        path = self.paths.deployment_env
        path.write_text(render_deployment_env(report), encoding="utf-8")
        return path

    def write_step_outputs(self, report: ReleaseReport, output_file: str | None) -> bool:
        """Append CI step outputs (changelog, docker_registry, version).

        Args:
            report: The release report
            output_file: Value of GITHUB_OUTPUT, if running in CI

        Returns:
            True if outputs were written
        """
        if not output_file:
            return False
        with open(output_file, "a", encoding="utf-8") as handle:
            delimiter = f"CHANGELOG_{uuid4().hex}"
            handle.write(f"changelog<<{delimiter}\n")
            handle.write(render_release_changelog(report))
            handle.write(f"{delimiter}\n")
            handle.write(f"docker_registry={report.registry}\n")
            handle.write(f"version={report.new_version}\n")
        logger.debug(f"Wrote step outputs to {output_file}")
        return True
