"""Image Forge: multi-repository Docker image release tooling."""

__version__ = "0.1.0"
