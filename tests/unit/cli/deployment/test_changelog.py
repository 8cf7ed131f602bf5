"""Unit tests for release reports and changelog files."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from pathlib import Path

import pytest

from image_forge.cli.deployment.changelog import (
    ChangelogWriter,
    EntryReport,
    ReleaseReport,
    insert_changelog_entry,
    render_commit_message,
    render_deployment_env,
    render_readme_entry,
)
from image_forge.cli.deployment.constants import DeploymentPaths
from image_forge.cli.deployment.repository_set import CommitInfo

HEADING = "## Changelog"


@pytest.fixture
def report() -> ReleaseReport:
    return ReleaseReport(
        previous_version="1.0.0",
        new_version="1.1.0",
        bump_kind="minor",
        registry="ghcr",
        dry_run=False,
        entries=(
            EntryReport(
                name="api",
                source_url="https://example.com/api.git",
                commit=CommitInfo("0123456789abcdef", "feat: x", "https://example.com/api"),
                tags=("ghcr.io/acme/api:latest",),
                pushed_tags=("ghcr.io/acme/api:latest",),
            ),
        ),
        created_at=datetime(2026, 1, 2, 3, 4, 5),
    )


class TestRendering:
    def test_readme_entry(self, report: ReleaseReport) -> None:
        entry = render_readme_entry(report)

        assert entry.startswith("### Version 1.1.0 - 2026-01-02 03:04:05")
        assert "#### Api Repository" in entry
        assert "[`01234567`](https://example.com/api/commit/0123456789abcdef)" in entry

    def test_commit_message(self, report: ReleaseReport) -> None:
        message = render_commit_message(report)

        assert message.splitlines()[0] == "chore: bump version to 1.1.0"
        assert "- api repo: https://example.com/api.git" in message

    def test_deployment_env(self, report: ReleaseReport) -> None:
        env = render_deployment_env(report)

        assert "VERSION=1.1.0\n" in env
        assert "PREVIOUS_VERSION=1.0.0\n" in env
        assert "API_REPO_URL=https://example.com/api.git\n" in env
        assert env.endswith("REPO_NAMES=api\n")

    def test_tag_name(self, report: ReleaseReport) -> None:
        assert report.tag_name == "v1.1.0"


class TestInsertChangelogEntry:
    def test_missing_readme(self) -> None:
        readme = insert_changelog_entry(None, "### new\n", HEADING)

        assert readme.startswith("# Deployment Repository")
        assert readme.endswith(f"{HEADING}\n\n### new\n")

    def test_newest_entry_first(self) -> None:
        existing = f"# Deploy\n\n{HEADING}\n\n### old\n"

        readme = insert_changelog_entry(existing, "### new\n", HEADING)

        assert readme.index("### new") < readme.index("### old")
        assert readme.startswith("# Deploy\n")

    def test_heading_appended_when_absent(self) -> None:
        readme = insert_changelog_entry("# Deploy", "### new\n", HEADING)
        assert readme == f"# Deploy\n\n{HEADING}\n\n### new\n"


class TestChangelogWriter:
    def test_writes_release_files(self, tmp_path: Path, report: ReleaseReport) -> None:
        writer = ChangelogWriter(DeploymentPaths(tmp_path))
        output = tmp_path / "github_output"

        writer.update_readme(report)
        writer.write_release_changelog(report)
        writer.write_deployment_env(report)
        assert writer.write_step_outputs(report, str(output)) is True

        assert HEADING in (tmp_path / "README.md").read_text()
        assert "## Version 1.1.0" in (tmp_path / "release_changelog.md").read_text()
        assert (tmp_path / "deployment.env").exists()
        outputs = output.read_text()
        assert outputs.startswith("changelog<<CHANGELOG_")
        assert "version=1.1.0\n" in outputs

    def test_step_output_delimiter_never_matches_changelog_line(
        self, tmp_path: Path, report: ReleaseReport
    ) -> None:
        entry = replace(report.entries[0], commit=CommitInfo("0123", "EOF", "https://x"))
        output = tmp_path / "github_output"

        ChangelogWriter(DeploymentPaths(tmp_path)).write_step_outputs(
            replace(report, entries=(entry,)), str(output)
        )

        lines = output.read_text().splitlines()
        delimiter = lines[0].removeprefix("changelog<<")
        assert delimiter != "EOF"
        assert "- **Message**: EOF" in lines
        assert lines.count(delimiter) == 1
        assert lines[lines.index(delimiter) + 1] == "docker_registry=ghcr"

    def test_step_outputs_skipped_outside_ci(
        self, tmp_path: Path, report: ReleaseReport
    ) -> None:
        assert ChangelogWriter(DeploymentPaths(tmp_path)).write_step_outputs(report, None) is False
