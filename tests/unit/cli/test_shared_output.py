"""Tests for console output of untrusted text."""

from __future__ import annotations

import io
from datetime import datetime
from unittest.mock import MagicMock

import pytest
import typer
from rich.console import Console

from image_forge.cli.commands.shared import print_result
from image_forge.cli.deployment.changelog import EntryReport, ReleaseReport
from image_forge.cli.deployment.repository_set import CommitInfo
from image_forge.cli.shared.console import CLIConsole


@pytest.fixture
def cli_console() -> CLIConsole:
    cli_console = CLIConsole()
    cli_console.console = Console(file=io.StringIO(), record=True, width=200)
    return cli_console


def make_result(message: str) -> MagicMock:
    report = ReleaseReport(
        previous_version="1.0.0",
        new_version="1.0.1",
        bump_kind="patch",
        registry="ghcr",
        dry_run=True,
        entries=(
            EntryReport(
                name="api",
                source_url="https://example.com/api.git",
                commit=CommitInfo("0123456789abcdef", message, "https://example.com/api"),
                tags=("ghcr.io/acme/api:latest",),
            ),
        ),
        created_at=datetime(2026, 1, 2, 3, 4, 5),
    )
    result = MagicMock()
    result.report = report
    return result


class TestPrintResult:
    """Commit subjects are shown verbatim in the summary and changelog."""

    @pytest.mark.parametrize(
        "message", ["chore: bump deps [skip ci]", "fix: close [/b] tag", "feat: [bold]x"]
    )
    def test_bracketed_commit_message(self, cli_console: CLIConsole, message: str) -> None:
        print_result(cli_console, make_result(message))

        output = cli_console.console.export_text()
        # once in the table, once in the release changelog
        assert output.count(message) == 2


class TestConsoleMessages:
    def test_warn_prints_brackets_verbatim(self, cli_console: CLIConsole) -> None:
        cli_console.warn("Ignoring deploy.config line 3 (not a repository URL): x=[/b]")

        assert "x=[/b]" in cli_console.console.export_text()

    def test_handle_error_prints_brackets_verbatim(self, cli_console: CLIConsole) -> None:
        with pytest.raises(typer.Exit):
            cli_console.handle_error("Push failed for [/red]", details="denied [/b]")

        output = cli_console.console.export_text()
        assert "Push failed for [/red]" in output
        assert "denied [/b]" in output
