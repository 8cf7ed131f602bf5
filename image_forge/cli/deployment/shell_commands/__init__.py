"""Shell command abstractions for image deployment operations.

This package provides a clean, well-documented interface for the external
tools invoked during a deployment. It is organized into specialized modules
for each tool:

- docker: Image build, push and registry authentication
- git: Cloning, revision metadata and release markers

Design Principles:
- Single Responsibility: Each module focuses on one tool
- Self-Documenting: Function names describe what they do
- Consistent Return Types: Functions return typed results, never raise on
  non-zero exit codes
- Separation of Concerns: Commands are decoupled from workflow logic

Usage:
    from image_forge.cli.deployment.shell_commands import ShellCommands

    commands = ShellCommands(project_root=Path("."))
    result = commands.git.clone("https://github.com/acme/api.git", Path("api"))
    if not result.success:
        print(result.output)
"""

from pathlib import Path

from .docker import DockerCommands
from .git import GitCommands
from .runner import CommandRunner
from .types import CommandResult


class ShellCommands:
    """Unified interface for all shell command operations.

    This class provides a facade over the specialized command modules,
    offering a single point of access for deployment operations while
    maintaining separation of concerns internally.

    Attributes:
        docker: Docker-related commands
        git: Git repository commands
    """

    def __init__(self, project_root: Path, timeout: float | None = None) -> None:
        """Initialize the shell commands executor.

        Args:
            project_root: Path to the project root directory.
                         Commands will be executed from this directory by default.
            timeout: Optional deadline in seconds applied to each command
        """
        self._project_root = Path(project_root)
        self._runner = CommandRunner(self._project_root, timeout=timeout)

        self.docker = DockerCommands(self._runner)
        self.git = GitCommands(self._runner)

    @property
    def project_root(self) -> Path:
        """Get the project root path."""
        return self._project_root


__all__ = [
    "ShellCommands",
    "CommandResult",
    "DockerCommands",
    "GitCommands",
    "CommandRunner",
]
