"""Version inspection commands."""

import typer

from image_forge.cli.context import get_cli_context
from image_forge.cli.deployment.version_store import VersionStore

from .shared import with_error_handling

version_app = typer.Typer(
    name="version",
    help="Inspect the deployment version.",
    no_args_is_help=True,
)


@version_app.command("show")
@with_error_handling
def show(ctx: typer.Context) -> None:
    """Print the version persisted in version.txt."""
    context = get_cli_context(ctx)
    store = VersionStore(context.paths.version_file, context.console, context.constants)
    if not context.paths.version_file.exists():
        context.console.warn(
            f"{context.paths.version_file.name} not found, a release would start "
            f"from {context.constants.INITIAL_VERSION}"
        )
    context.console.print(str(store.read(create=False)))
