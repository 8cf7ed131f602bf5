"""CLI command modules.

Commands:
- release: Bump the version and publish every repository image
- publish: Re-publish images from existing working copies
- version: Inspect the persisted version
"""

from .publish import publish as publish_command
from .release import release as release_command
from .version import version_app

__all__ = [
    "release_command",
    "publish_command",
    "version_app",
]
