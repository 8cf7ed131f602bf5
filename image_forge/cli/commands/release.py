"""Release command.

Bumps the deployment version, clones every configured repository, builds
and publishes one image per repository and records the release.
"""

from typing import Annotated

import typer

from image_forge.cli.context import get_cli_context
from image_forge.cli.deployment.version_store import BumpKind

from .shared import build_pipeline, print_result, with_error_handling


@with_error_handling
def release(
    ctx: typer.Context,
    bump: Annotated[
        BumpKind,
        typer.Argument(
            help="Version component to bump",
            case_sensitive=False,
        ),
    ] = BumpKind.PATCH,
    test: Annotated[
        bool,
        typer.Option(
            "--test",
            "--no-commit",
            help="Dry run: build images but skip login, push and commits",
        ),
    ] = False,
    additional_tag: Annotated[
        str | None,
        typer.Option(
            "--additional-tag",
            "-t",
            help="Extra image tag applied to every image (default: ADDITIONAL_TAG)",
        ),
    ] = None,
) -> None:
    """Release a new version of every configured repository image.

    This command:
    - Resolves deploy.config (or *_REPO_URL variables, or the defaults)
    - Bumps the version in version.txt
    - Clones each repository and builds its image
    - Logs in, installs certificates where flagged, and pushes all tags
    - Updates the changelog, commits, tags and pushes the release

    With --test everything up to and including the image build runs, but
    nothing is pushed, committed or written.

    Examples:
        image-forge-cli release
        image-forge-cli release minor
        image-forge-cli release major --test
        image-forge-cli release patch --additional-tag staging
    """
    context = get_cli_context(ctx)
    mode = "dry run" if test else "commit"
    context.console.print_header(f"Releasing ({bump.value} bump, {mode})")

    pipeline = build_pipeline(context)
    result = pipeline.run(bump, dry_run=test, additional_tag=additional_tag)
    print_result(context.console, result)
