"""Data types for shell command results.

This module contains the dataclasses shared by the shell command modules.
"""

from __future__ import annotations

from dataclasses import dataclass

__all__ = [
    "CommandResult",
]


@dataclass
class CommandResult:
    """Result of an external command invocation.

    Attributes:
        success: Whether the command exited with status 0
        stdout: Captured standard output (empty when not captured)
        stderr: Captured standard error (empty when not captured)
        returncode: Process exit code
    """

    success: bool
    stdout: str = ""
    stderr: str = ""
    returncode: int = 0

    @property
    def output(self) -> str:
        """Combined output, preferring stderr when the command failed."""
        if not self.success and self.stderr.strip():
            return self.stderr.strip()
        return (self.stdout or self.stderr).strip()

    def tail(self, lines: int = 20) -> str:
        """Last ``lines`` lines of ``output``, for error details."""
        return "\n".join(self.output.splitlines()[-lines:])

