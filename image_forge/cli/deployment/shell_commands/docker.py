"""Docker command abstractions.

This module provides commands for Docker image operations: building,
tagging, pushing, and registry authentication.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from .types import CommandResult

if TYPE_CHECKING:
    from .runner import CommandRunner


class DockerCommands:
    """Docker-related shell commands.

    Provides operations for:
    - Image management (build, push, inspect)
    - Registry authentication (login, logout)
    """

    def __init__(self, runner: CommandRunner) -> None:
        """Initialize Docker commands.

        Args:
            runner: Command runner for executing shell commands
        """
        self._runner = runner

    # =========================================================================
    # Image Management
    # =========================================================================

    def build(
        self,
        context: Path,
        dockerfile: Path,
        tags: Sequence[str],
        *,
        labels: Mapping[str, str] | None = None,
        on_output: Callable[[str], None] | None = None,
    ) -> CommandResult:
        """Build an image from a build context, applying every tag at once.

        Args:
            context: Build context directory
            dockerfile: Path to the Dockerfile (absolute or relative to context)
            tags: Fully qualified tags to apply to the built image
            labels: Optional image labels
            on_output: Callback receiving each line of build output

        Returns:
            CommandResult with build status and collected output

        Example:
            >>> docker.build(Path("api"), Path("api/Dockerfile"), ["ghcr.io/acme/api:latest"])
        """
        cmd = ["docker", "build"]
        for tag in tags:
            cmd.extend(["-t", tag])
        for key, value in (labels or {}).items():
            cmd.extend(["--label", f"{key}={value}"])
        cmd.extend(["-f", str(dockerfile), str(context)])
        return self._runner.run_streaming(cmd, cwd=context, on_output=on_output)

    def image_user(self, image_tag: str) -> str | None:
        """Return the configured user of a local image.

        Args:
            image_tag: Full image tag

        Returns:
            The image's ``Config.User`` value, or None when unset or not inspectable
        """
        result = self._runner.run(
            ["docker", "image", "inspect", "--format", "{{.Config.User}}", image_tag]
        )
        if not result.success:
            return None
        return result.stdout.strip() or None

    def push_image(self, image_tag: str) -> CommandResult:
        """Push a Docker image to a remote registry.

        Args:
            image_tag: Full image tag including registry
                      (e.g., "quay.io/acme/api:latest")

        Returns:
            CommandResult with push status
        """
        return self._runner.run(["docker", "push", image_tag])

    # =========================================================================
    # Registry Authentication
    # =========================================================================

    def login(self, server: str, username: str, password: str) -> CommandResult:
        """Log in to a registry, passing the secret on standard input.

        Args:
            server: Registry login server (e.g., "ghcr.io")
            username: Registry username
            password: Token or password (never placed on the command line)

        Returns:
            CommandResult with login status
        """
        return self._runner.run(
            ["docker", "login", server, "-u", username, "--password-stdin"],
            input=password,
        )

    def logout(self, server: str) -> CommandResult:
        """Log out from a registry.

        Args:
            server: Registry login server

        Returns:
            CommandResult with logout status
        """
        return self._runner.run(["docker", "logout", server])
