"""Shared utilities for CLI commands.

This module provides the helpers used across command modules: building
the deployment pipeline from the CLI context and rendering its reports.
"""

from rich.markup import escape
from rich.table import Table
from rich.text import Text

from image_forge.cli.context import CLIContext
from image_forge.cli.deployment.changelog import ReleaseReport, render_release_changelog
from image_forge.cli.deployment.pipeline import DeploymentPipeline, PipelineResult
from image_forge.cli.shared.console import CLIConsole, console, with_error_handling

__all__ = [
    "console",
    "with_error_handling",
    "build_pipeline",
    "render_summary_table",
    "print_result",
]


def build_pipeline(context: CLIContext) -> DeploymentPipeline:
    """Create a deployment pipeline wired to the CLI context.

    Args:
        context: Runtime dependencies for the current command

    Returns:
        DeploymentPipeline using the context's console, commands and paths
    """
    return DeploymentPipeline(
        context.commands,
        context.console,
        context.paths,
        constants=context.constants,
    )


def render_summary_table(report: ReleaseReport) -> Table:
    """Render one row per entry with its commit and tags."""
    title = "Deployment Summary (dry run)" if report.dry_run else "Deployment Summary"
    table = Table(title=title)
    table.add_column("Repository", style="cyan")
    table.add_column("Commit", style="magenta")
    table.add_column("Message")
    table.add_column("Tags", style="green")
    table.add_column("Certificates", justify="center")

    for entry in report.entries:
        tags = entry.pushed_tags or entry.tags
        table.add_row(
            escape(entry.name),
            escape(entry.commit.short_id),
            escape(entry.commit.head_commit_message),
            escape("\n".join(tags)),
            "yes" if entry.certificates_installed else "-",
        )
    return table


def print_result(cli_console: CLIConsole, result: PipelineResult) -> None:
    """Print the summary table, and the release changelog in dry-run mode."""
    report = result.report
    cli_console.print(render_summary_table(report))
    if report.dry_run:
        cli_console.print_subheader("Release changelog (not written)")
        cli_console.print(Text(render_release_changelog(report)))
