"""Deployment constants and configuration.

This module centralizes all magic strings, paths, and configuration values
used throughout the deployment process.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class DeploymentConstants:
    """Constants for the image deployment pipeline.

    This class provides a centralized location for all deployment-related
    constants, making them easy to find, update, and test.

    All attributes are class-level and immutable.
    """

    # Project files
    VERSION_FILE: str = "version.txt"
    CONFIG_FILE: str = "deploy.config"
    ENV_FILE: str = ".env"
    README_FILE: str = "README.md"
    RELEASE_CHANGELOG_FILE: str = "release_changelog.md"
    DEPLOYMENT_ENV_FILE: str = "deployment.env"
    ASSETS_DIR: str = "assets"

    # Version
    INITIAL_VERSION: str = "1.0.0"

    # Build
    DEFAULT_DOCKERFILE: str = "Dockerfile"

    # Certificates
    DEFAULT_CERT_INSTALL_PATH: str = "/usr/local/share/ca-certificates"
    CERT_EXTENSIONS: tuple[str, ...] = (".crt", ".pem", ".cer")

    # Registry authentication retry policy
    LOGIN_ATTEMPTS: int = 3
    LOGIN_BACKOFF_SECONDS: float = 2.0

    # Backward-compatible default repositories
    DEFAULT_FRONTEND_URL: str = "https://github.com/your-org/frontend-repo.git"
    DEFAULT_BACKEND_URL: str = "https://github.com/your-org/backend-repo.git"

    # Default registry selector when none is configured
    DEFAULT_REGISTRY: str = "ghcr"

    # Changelog
    CHANGELOG_HEADING: str = "## Changelog"

    # Entry names double as directory names and image name components
    ENTRY_NAME_PATTERN: re.Pattern[str] = re.compile(r"^[a-z0-9][a-z0-9._-]*$")

    # Values recognised as repository URLs in deploy.config
    REPO_URL_PATTERN: re.Pattern[str] = re.compile(
        r"^https?://.*\.git$|^git@|github\.com|gitlab\.com|bitbucket\.org"
    )


class DeploymentPaths:
    """Path resolver for deployment-related directories and files.

    This class constructs and provides access to all paths needed during
    deployment, derived from the project root. Cloned working copies live
    directly under the workspace directory, one per entry name.
    """

    def __init__(
        self,
        project_root: Path,
        *,
        workspace: Path | None = None,
        config_file: Path | None = None,
    ) -> None:
        """Initialize deployment paths.

        Args:
            project_root: Path to the project root directory
            workspace: Directory receiving cloned repositories (default: project root)
            config_file: Declarative config file (default: deploy.config in project root)
        """
        self.project_root = project_root
        self._constants = DeploymentConstants()
        self.workspace = workspace or project_root
        self._config_file = config_file

    @property
    def config_file(self) -> Path:
        """Get path to deploy.config."""
        return self._config_file or self.project_root / self._constants.CONFIG_FILE

    @property
    def version_file(self) -> Path:
        """Get path to version.txt."""
        return self.project_root / self._constants.VERSION_FILE

    @property
    def env_file(self) -> Path:
        """Get path to .env file."""
        return self.project_root / self._constants.ENV_FILE

    @property
    def readme(self) -> Path:
        """Get path to README.md holding the changelog section."""
        return self.project_root / self._constants.README_FILE

    @property
    def release_changelog(self) -> Path:
        """Get path to the release changelog consumed by CI releases."""
        return self.project_root / self._constants.RELEASE_CHANGELOG_FILE

    @property
    def deployment_env(self) -> Path:
        """Get path to the exported deployment.env file."""
        return self.project_root / self._constants.DEPLOYMENT_ENV_FILE

    @property
    def assets_dir(self) -> Path:
        """Get path to the certificate assets directory."""
        return self.project_root / self._constants.ASSETS_DIR

    def working_copy(self, name: str) -> Path:
        """Get the local path of the working copy for entry ``name``."""
        return self.workspace / name
