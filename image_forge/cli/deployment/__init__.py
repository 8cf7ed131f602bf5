"""Deployment module for releasing images built from many repositories.

This package provides the pieces of a release run:
- VersionStore: Semantic version persisted in version.txt
- DeploymentConfig: deploy.config parsing with environment fallbacks
- RepositorySet: Fresh working copies and their head commit metadata
- ImagePublisher: Image build, certificate injection and registry push
- DeploymentPipeline: Orchestration of a commit or dry-run release

The package is organized into subpackages for modularity:
- shell_commands: Abstractions for shell command execution
"""

from .deploy_config import RegistryKind, RepositoryEntry, ResolvedConfig, load_deploy_config
from .errors import DeploymentError, PipelineError
from .image_publisher import ImagePublisher, PublishResult
from .pipeline import DeploymentPipeline, PipelineResult, PipelineState
from .repository_set import RepositorySet
from .version_store import BumpKind, SemanticVersion, VersionStore

__all__ = [
    "BumpKind",
    "DeploymentError",
    "DeploymentPipeline",
    "ImagePublisher",
    "PipelineError",
    "PipelineResult",
    "PipelineState",
    "PublishResult",
    "RegistryKind",
    "RepositoryEntry",
    "RepositorySet",
    "ResolvedConfig",
    "SemanticVersion",
    "VersionStore",
    "load_deploy_config",
]
