"""Deployment error taxonomy.

Every failure raised by the deployment pipeline is a ``DeploymentError``
carrying a user-facing message and optional recovery details. Subclasses
record the entry (repository name) and step involved so the CLI can say
exactly what failed.
"""

from __future__ import annotations


class DeploymentError(Exception):
    """Raised when a deployment operation fails."""

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(message)


class ConfigurationError(DeploymentError):
    """Unsupported registry selector, missing credentials or an empty entry set."""


class VersionPersistError(DeploymentError):
    """The version file could not be read or written."""


class EntryError(DeploymentError):
    """Base class for failures tied to one configured repository entry."""

    def __init__(self, entry: str, message: str, details: str | None = None):
        self.entry = entry
        super().__init__(message, details)


class CloneError(EntryError):
    """A repository could not be cloned."""

    def __init__(self, entry: str, url: str, details: str | None = None):
        self.url = url
        super().__init__(
            entry, f"Failed to clone '{entry}' repository from {url}", details
        )


class BuildError(EntryError):
    """The build manifest is missing or the image build failed."""


class AuthenticationError(EntryError):
    """Registry login failed after all retry attempts."""


class CertificateInjectionError(EntryError):
    """Certificates could not be installed into a built image."""


class PushError(EntryError):
    """A tag could not be pushed to the registry."""

    def __init__(self, entry: str, tag: str, details: str | None = None):
        self.tag = tag
        super().__init__(entry, f"Failed to push {tag}", details)


class SourceControlError(DeploymentError):
    """Committing, tagging or pushing the release marker failed."""


class PipelineError(DeploymentError):
    """A pipeline step failed; wraps the step's own error."""

    def __init__(self, step: str, cause: DeploymentError):
        self.step = step
        self.cause = cause
        self.entry: str | None = getattr(cause, "entry", None)
        where = f"step '{step}'"
        if self.entry:
            where += f" (entry '{self.entry}')"
        super().__init__(f"Deployment failed at {where}: {cause.message}", cause.details)
