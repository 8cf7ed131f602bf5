import os
from pathlib import Path

PROJECT_ROOT_ENV = "IMAGE_FORGE_PROJECT_ROOT"


def get_project_root() -> Path:
    """Get the deployment project root directory.

    The deployment repository is the one holding ``deploy.config`` and
    ``version.txt``. It is taken from ``IMAGE_FORGE_PROJECT_ROOT`` when set,
    otherwise the nearest directory at or above the current working
    directory containing ``deploy.config`` or ``version.txt``, otherwise the
    current working directory.

    Returns:
        Path to the project root directory
    """
    override = os.environ.get(PROJECT_ROOT_ENV)
    if override:
        return Path(override).expanduser().resolve()

    current = Path.cwd().resolve()

    # Walk up the directory tree looking for deployment markers
    for parent in [current, *current.parents]:
        if (parent / "deploy.config").exists() or (parent / "version.txt").exists():
            return parent

    return current
