"""Semantic version state for the deployment repository.

The deployment repository keeps a single ``MAJOR.MINOR.PATCH`` line in
``version.txt``. Each pipeline run reads it, applies exactly one bump and,
in commit mode only, writes the result back.

Parsing is lossy-tolerant: a corrupted version file never aborts a
deployment. Non-numeric or missing minor/patch components become ``0`` and
a non-numeric major becomes ``1``; every replacement is surfaced as a
warning.
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from loguru import logger

from image_forge.utils.console_like import ConsoleLike, coalesce_console

from .constants import DeploymentConstants
from .errors import VersionPersistError


class BumpKind(str, Enum):
    """Version bump kinds."""

    PATCH = "patch"
    MINOR = "minor"
    MAJOR = "major"


@dataclass(frozen=True, order=True)
class SemanticVersion:
    """A three-component semantic version."""

    major: int
    minor: int
    patch: int

    def __post_init__(self) -> None:
        if min(self.major, self.minor, self.patch) < 0:
            raise ValueError(f"Version components must be non-negative: {self}")

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"

    def bump(self, kind: BumpKind | str) -> SemanticVersion:
        """Return the version following this one for ``kind``.

        Raises:
            ValueError: If ``kind`` is not patch, minor or major
        """
        kind = BumpKind(kind)
        if kind is BumpKind.MAJOR:
            return SemanticVersion(self.major + 1, 0, 0)
        if kind is BumpKind.MINOR:
            return SemanticVersion(self.major, self.minor + 1, 0)
        return SemanticVersion(self.major, self.minor, self.patch + 1)


# Replacement used for each component position when it cannot be parsed
_COMPONENT_DEFAULTS = (("major", 1), ("minor", 0), ("patch", 0))


def parse_version(text: str, console: ConsoleLike | None = None) -> SemanticVersion:
    """Parse ``MAJOR.MINOR.PATCH`` text, normalizing instead of failing.

    Args:
        text: Raw version text (surrounding whitespace is ignored)
        console: Receives a warning for every replaced or dropped component

    Returns:
        The normalized version

    Example:
        >>> str(parse_version("1.2.x"))
        '1.2.0'
        >>> str(parse_version("bad.1.2"))
        '1.1.2'
    """
    out = coalesce_console(console)
    parts = text.strip().split(".")
    values: list[int] = []

    for index, (label, default) in enumerate(_COMPONENT_DEFAULTS):
        raw = parts[index] if index < len(parts) else ""
        if raw.isascii() and raw.isdigit():
            values.append(int(raw))
        else:
            out.warn(f"Invalid {label} version '{raw}', defaulting to {default}")
            values.append(default)

    version = SemanticVersion(*values)
    if len(parts) > 3:
        out.warn(
            "Version has extra components beyond major.minor.patch, "
            f"normalizing to {version}"
        )
    return version


class VersionStore:
    """Reads and persists the deployment version file.

    The file is the single source of truth for the released version. Writes
    replace the file atomically, so an interrupted run never leaves a
    half-written version behind.
    """

    def __init__(
        self,
        path: Path,
        console: ConsoleLike | None = None,
        constants: DeploymentConstants | None = None,
    ) -> None:
        """Initialize the version store.

        Args:
            path: Location of version.txt
            console: Console for warnings and progress messages
            constants: Optional deployment constants (uses defaults if not provided)
        """
        self.path = path
        self.console = coalesce_console(console)
        self.constants = constants or DeploymentConstants()

    def read(self, *, create: bool = True) -> SemanticVersion:
        """Read the persisted version.

        When no version file exists, the initial version ``1.0.0`` is
        returned and, if ``create`` is true, written to disk.

        Args:
            create: Persist the initial version when the file is missing

        Returns:
            The current version

        Raises:
            VersionPersistError: If an existing file cannot be read
        """
        if not self.path.exists():
            initial = parse_version(self.constants.INITIAL_VERSION)
            if create:
                self.console.info("Creating initial version file")
                self.write(initial)
            else:
                logger.debug(f"{self.path} missing, assuming {initial}")
            return initial

        try:
            raw = self.path.read_bytes()
        except OSError as exc:
            raise VersionPersistError(
                f"Could not read version from {self.path}", details=str(exc)
            ) from exc
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError:
            self.console.warn(f"{self.path.name} contains invalid UTF-8 bytes")
            text = raw.decode("utf-8", errors="replace")

        version = parse_version(text, self.console)
        logger.debug(f"Read version {version} from {self.path}")
        return version

    @staticmethod
    def bump(current: SemanticVersion, kind: BumpKind | str) -> SemanticVersion:
        """Compute the next version without side effects."""
        return current.bump(kind)

    def write(self, version: SemanticVersion) -> None:
        """Persist ``version``, replacing any previous content.

        Raises:
            VersionPersistError: If the file cannot be written
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", dir=self.path.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(f"{version}\n")
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise VersionPersistError(
                f"Could not write version {version} to {self.path}",
                details=str(exc),
            ) from exc
        logger.debug(f"Wrote version {version} to {self.path}")
