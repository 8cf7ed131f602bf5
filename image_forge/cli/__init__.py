"""Main CLI application module.

This module provides the main entry point for the Image Forge CLI.

Commands:
- release: Bump the version, clone repositories, publish images, record the release
- publish: Publish images from existing working copies
- version: Version inspection
"""

import sys
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger

from .commands import publish_command, release_command, version_app
from .context import build_cli_context

# Create the main CLI application
app = typer.Typer(
    help="🐳 Image Forge CLI - Multi-repository image release tool",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def configure_logging(verbose: bool = False) -> None:
    """Route loguru diagnostics to stderr at DEBUG or WARNING level."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


@app.callback()
def root(
    ctx: typer.Context,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug diagnostics"),
    ] = False,
    project_root: Annotated[
        Path | None,
        typer.Option(
            "--project-root",
            help="Deployment repository root (default: detected from cwd)",
            envvar="IMAGE_FORGE_PROJECT_ROOT",
        ),
    ] = None,
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to deploy.config"),
    ] = None,
    workspace: Annotated[
        Path | None,
        typer.Option(
            "--workspace",
            "-w",
            help="Directory receiving cloned repositories (default: project root)",
        ),
    ] = None,
) -> None:
    configure_logging(verbose)
    ctx.obj = build_cli_context(
        project_root.resolve() if project_root else None,
        workspace=workspace.resolve() if workspace else None,
        config_file=config.resolve() if config else None,
    )


app.command("release")(release_command)
app.command("publish")(publish_command)
app.add_typer(version_app, name="version")


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
