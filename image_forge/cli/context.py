"""CLI context and dependency container."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import click
import typer

from image_forge.cli.deployment.constants import DeploymentConstants, DeploymentPaths
from image_forge.cli.deployment.shell_commands import ShellCommands
from image_forge.cli.shared.console import CLIConsole, console
from image_forge.utils.paths import get_project_root


@dataclass(frozen=True)
class CLIContext:
    """Runtime dependencies for CLI commands."""

    console: CLIConsole
    project_root: Path
    commands: ShellCommands
    constants: DeploymentConstants
    paths: DeploymentPaths


def build_cli_context(
    project_root: Path | None = None,
    *,
    workspace: Path | None = None,
    config_file: Path | None = None,
) -> CLIContext:
    """Build a fresh CLIContext.

    Args:
        project_root: Deployment repository root (detected when omitted)
        workspace: Directory receiving cloned repositories
        config_file: Alternative deploy.config location
    """
    project_root = project_root or get_project_root()
    constants = DeploymentConstants()
    paths = DeploymentPaths(project_root, workspace=workspace, config_file=config_file)

    return CLIContext(
        console=console,
        project_root=project_root,
        commands=ShellCommands(project_root),
        constants=constants,
        paths=paths,
    )


def get_cli_context(ctx: typer.Context | None = None) -> CLIContext:
    """Return the CLIContext from Typer, falling back to a new instance."""
    context = ctx or click.get_current_context(silent=True)
    if context and isinstance(context.obj, CLIContext):
        return context.obj
    return build_cli_context()
