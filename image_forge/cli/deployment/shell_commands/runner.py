"""Command runner for executing shell commands.

This module provides the base command execution functionality used by
all specialized command modules.
"""

from __future__ import annotations

import os
import subprocess
from collections.abc import Callable, Sequence
from pathlib import Path

from loguru import logger

from .types import CommandResult

# Exit code reported when a command exceeds its deadline (matches coreutils timeout)
TIMEOUT_RETURNCODE = 124


class CommandRunner:
    """Low-level command executor with consistent result handling.

    This class provides the foundation for executing shell commands with
    proper output capture, error handling, and streaming support.

    The Docker and Git command modules use this runner for actual
    command execution. A default timeout can be supplied so that every
    external tool invocation is bounded; expiry is reported as an ordinary
    failed ``CommandResult``.
    """

    def __init__(self, project_root: Path, timeout: float | None = None) -> None:
        """Initialize the command runner.

        Args:
            project_root: Path to the project root directory.
                         Commands will be executed from this directory by default.
            timeout: Default deadline in seconds for each command (None = no limit)
        """
        self.project_root = project_root
        self.timeout = timeout

    def run(
        self,
        cmd: Sequence[str],
        *,
        cwd: Path | None = None,
        capture_output: bool = True,
        check: bool = False,
        input: str | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        """Execute a shell command and return structured result.

        Args:
            cmd: Command and arguments as a sequence
            cwd: Working directory (defaults to project_root)
            capture_output: Whether to capture stdout/stderr
            check: Whether to raise exception on non-zero exit code
            input: Text passed to the command's standard input
            timeout: Deadline in seconds, overriding the runner default

        Returns:
            CommandResult with success status, output, and return code

        Raises:
            subprocess.CalledProcessError: If check=True and command fails
        """
        deadline = timeout if timeout is not None else self.timeout
        logger.debug(f"Running: {' '.join(cmd)} (cwd={cwd or self.project_root})")
        try:
            result = subprocess.run(
                list(cmd),
                cwd=cwd or self.project_root,
                capture_output=capture_output,
                text=True,
                check=check,
                input=input,
                timeout=deadline,
            )
        except subprocess.TimeoutExpired:
            logger.debug(f"Command timed out after {deadline}s: {cmd[0]}")
            return CommandResult(
                success=False,
                stderr=f"'{' '.join(cmd[:2])}' timed out after {deadline}s",
                returncode=TIMEOUT_RETURNCODE,
            )
        except FileNotFoundError:
            return CommandResult(
                success=False,
                stderr=f"'{cmd[0]}' not found in PATH",
                returncode=127,
            )
        return CommandResult(
            success=result.returncode == 0,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
            returncode=result.returncode,
        )

    def run_streaming(
        self,
        cmd: Sequence[str],
        *,
        cwd: Path | None = None,
        on_output: Callable[[str], None] | None = None,
    ) -> CommandResult:
        """Execute a shell command with real-time output streaming.

        This method runs a command and calls the on_output callback for each
        line of output, allowing real-time progress display. Streaming
        commands are not bounded by the runner timeout.

        Args:
            cmd: Command and arguments as a sequence
            cwd: Working directory (defaults to project_root)
            on_output: Callback function called with each line of output.
                      If None, output is collected but not streamed.

        Returns:
            CommandResult with success status, collected output, and return code
        """
        logger.debug(f"Streaming: {' '.join(cmd)} (cwd={cwd or self.project_root})")

        # Set environment to disable output buffering
        env = os.environ.copy()
        env["PYTHONUNBUFFERED"] = "1"

        try:
            process = subprocess.Popen(
                list(cmd),
                cwd=cwd or self.project_root,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,  # Merge stderr into stdout
                text=True,
                bufsize=0,  # Unbuffered
                env=env,
            )
        except FileNotFoundError:
            return CommandResult(
                success=False,
                stderr=f"'{cmd[0]}' not found in PATH",
                returncode=127,
            )

        stdout_lines: list[str] = []

        # Read output line by line
        if process.stdout:
            for line in iter(process.stdout.readline, ""):
                line = line.rstrip("\n")
                if line:  # Only process non-empty lines
                    stdout_lines.append(line)
                    if on_output:
                        on_output(line)

        process.wait()

        return CommandResult(
            success=process.returncode == 0,
            stdout="\n".join(stdout_lines),
            stderr="",  # stderr is merged into stdout
            returncode=process.returncode or 0,
        )
