"""Publish command for already cloned repositories."""

from typing import Annotated

import typer

from image_forge.cli.context import get_cli_context

from .shared import build_pipeline, print_result, with_error_handling


@with_error_handling
def publish(
    ctx: typer.Context,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            help="Build images but skip login and push",
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
    """Build and push images for every configured repository.

    Working copies must already exist in the workspace (for example from
    a previous release run). The current version is used for image labels
    and nothing is committed.

    Examples:
        image-forge-cli publish
        image-forge-cli publish --dry-run
    """
    context = get_cli_context(ctx)
    context.console.print_header("Publishing Images")

    pipeline = build_pipeline(context)
    result = pipeline.publish_existing(dry_run=dry_run, additional_tag=additional_tag)
    print_result(context.console, result)
