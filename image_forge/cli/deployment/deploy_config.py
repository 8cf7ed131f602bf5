"""Declarative deployment configuration.

``deploy.config`` is a list of ``key=value`` lines::

    # Registry: ghcr (aliases ghcr.io, github) or quay (alias quay.io)
    docker_registry=ghcr
    cert_install_path=/usr/local/share/ca-certificates

    api=https://github.com/acme/api.git
    web=git@github.com:acme/web.git
    web_needs_certs=true

Each line is parsed into a typed directive. ``resolve_config`` folds the
directives into a ``ResolvedConfig`` and degrades through three sources
when no repositories are defined: the config file, then ``<NAME>_REPO_URL``
environment variables, then a default ``frontend``/``backend`` pair.
Resolution never fails; ``ResolvedConfig.require_registry`` is where an
unsupported registry selector becomes fatal.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from loguru import logger

from image_forge.utils.console_like import ConsoleLike, coalesce_console

from .constants import DeploymentConstants
from .errors import ConfigurationError

_TRUE_VALUES = {"true", "yes", "1"}
_FALSE_VALUES = {"false", "no", "0"}
_CERT_FLAG_SUFFIX = "_needs_certs"
_ENV_REPO_SUFFIX = "_REPO_URL"


class RegistryKind(str, Enum):
    """Supported registry backends."""

    GHCR = "ghcr"
    QUAY = "quay"


_REGISTRY_ALIASES: dict[str, RegistryKind] = {
    "ghcr": RegistryKind.GHCR,
    "ghcr.io": RegistryKind.GHCR,
    "github": RegistryKind.GHCR,
    "quay": RegistryKind.QUAY,
    "quay.io": RegistryKind.QUAY,
}


def normalize_registry(selector: str) -> RegistryKind | None:
    """Map a registry selector or alias to its canonical kind, if supported."""
    return _REGISTRY_ALIASES.get(selector.strip().lower())


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RepositoryEntry:
    """One configured repository-to-image mapping."""

    name: str
    source_url: str
    needs_certificates: bool = False


class ConfigSource(str, Enum):
    """Where the resolved repository entries came from."""

    CONFIG_FILE = "config file"
    ENVIRONMENT = "environment"
    DEFAULTS = "defaults"


@dataclass(frozen=True)
class ResolvedConfig:
    """The result of resolving deployment configuration.

    Attributes:
        registry_selector: Registry selector as written by the user
        registry: Canonical registry kind, or None when unsupported
        entries: Repository entries in declaration order
        cert_install_path: Directory certificates are installed to inside images
        source: Which source produced the entries
    """

    registry_selector: str
    registry: RegistryKind | None
    entries: tuple[RepositoryEntry, ...]
    cert_install_path: str
    source: ConfigSource

    @property
    def names(self) -> list[str]:
        return [entry.name for entry in self.entries]

    def entry(self, name: str) -> RepositoryEntry:
        """Look up an entry by name.

        Raises:
            KeyError: If no entry has that name
        """
        for entry in self.entries:
            if entry.name == name:
                return entry
        raise KeyError(name)

    def require_registry(self) -> RegistryKind:
        """Return the registry kind, refusing unsupported selectors.

        Raises:
            ConfigurationError: If the selector is not a supported registry
        """
        if self.registry is None:
            supported = ", ".join(sorted(_REGISTRY_ALIASES))
            raise ConfigurationError(
                f"Unsupported docker registry: {self.registry_selector!r}",
                details=f"Supported registries: {supported}",
            )
        return self.registry

    def require_entries(self) -> tuple[RepositoryEntry, ...]:
        """Return the entries, refusing an empty set.

        Raises:
            ConfigurationError: If no entries are configured
        """
        if not self.entries:
            raise ConfigurationError(
                "No repositories configured",
                details="Add name=https://host/org/repo.git lines to deploy.config "
                "or set <NAME>_REPO_URL environment variables.",
            )
        return self.entries


# ---------------------------------------------------------------------------
# Line directives
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RegistryDirective:
    selector: str


@dataclass(frozen=True)
class CertPathDirective:
    path: str


@dataclass(frozen=True)
class CertFlagDirective:
    name: str
    enabled: bool


@dataclass(frozen=True)
class RepositoryDirective:
    name: str
    url: str


@dataclass(frozen=True)
class Unrecognized:
    line_number: int
    text: str
    reason: str


Directive = (
    RegistryDirective
    | CertPathDirective
    | CertFlagDirective
    | RepositoryDirective
    | Unrecognized
)


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
        return value[1:-1].strip()
    return value


def parse_line(
    line: str, line_number: int = 0, constants: DeploymentConstants | None = None
) -> Directive | None:
    """Classify one config line.

    Args:
        line: Raw line text
        line_number: 1-based line number used in diagnostics
        constants: Optional deployment constants (uses defaults if not provided)

    Returns:
        The directive, or None for blank and comment lines
    """
    constants = constants or DeploymentConstants()
    text = line.strip()
    if not text or text.startswith("#"):
        return None

    key, sep, raw_value = text.partition("=")
    key = key.strip()
    value = _unquote(raw_value.strip())
    if not sep or not key or not value:
        return Unrecognized(line_number, text, "expected key=value")

    if key == "docker_registry":
        return RegistryDirective(value)
    if key == "cert_install_path":
        return CertPathDirective(value)

    if key.endswith(_CERT_FLAG_SUFFIX):
        name = key[: -len(_CERT_FLAG_SUFFIX)]
        flag = value.lower()
        if flag in _TRUE_VALUES | _FALSE_VALUES:
            return CertFlagDirective(name, flag in _TRUE_VALUES)
        return Unrecognized(line_number, text, f"'{value}' is not true or false")

    if not constants.REPO_URL_PATTERN.search(value):
        return Unrecognized(line_number, text, "not a repository URL")
    if not constants.ENTRY_NAME_PATTERN.match(key):
        return Unrecognized(
            line_number,
            text,
            f"'{key}' is not a valid image name (use lowercase letters, "
            "digits, '.', '_' or '-')",
        )
    return RepositoryDirective(key, value)


def parse_config_text(
    text: str, constants: DeploymentConstants | None = None
) -> list[Directive]:
    """Parse every non-blank, non-comment line of a config file."""
    directives: list[Directive] = []
    for number, line in enumerate(text.splitlines(), start=1):
        directive = parse_line(line, number, constants)
        if directive is not None:
            directives.append(directive)
    return directives


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


@dataclass
class _Accumulator:
    registry: str | None = None
    cert_path: str | None = None
    urls: dict[str, str] = field(default_factory=dict)
    cert_flags: dict[str, bool] = field(default_factory=dict)


def _entries_from_environment(
    environ: Mapping[str, str], constants: DeploymentConstants, out: ConsoleLike
) -> dict[str, str]:
    urls: dict[str, str] = {}
    for var in sorted(environ):
        if not var.endswith(_ENV_REPO_SUFFIX) or not environ[var].strip():
            continue
        name = var[: -len(_ENV_REPO_SUFFIX)].lower()
        if not constants.ENTRY_NAME_PATTERN.match(name):
            out.warn(f"Ignoring {var}: '{name}' is not a valid image name")
            continue
        urls[name] = environ[var].strip()
    return urls


def resolve_config(
    text: str | None,
    environ: Mapping[str, str],
    console: ConsoleLike | None = None,
    constants: DeploymentConstants | None = None,
) -> ResolvedConfig:
    """Resolve deployment configuration from config text and the environment.

    Args:
        text: Contents of deploy.config, or None when the file is unavailable
        environ: Environment used for the fallback chain and defaults
        console: Console for warnings about degraded resolution
        constants: Optional deployment constants (uses defaults if not provided)

    Returns:
        The resolved configuration
    """
    out = coalesce_console(console)
    constants = constants or DeploymentConstants()
    acc = _Accumulator()

    for directive in parse_config_text(text or "", constants):
        if isinstance(directive, RegistryDirective):
            acc.registry = directive.selector
        elif isinstance(directive, CertPathDirective):
            acc.cert_path = directive.path
        elif isinstance(directive, CertFlagDirective):
            acc.cert_flags[directive.name] = directive.enabled
        elif isinstance(directive, RepositoryDirective):
            if directive.name in acc.urls:
                logger.debug(f"Repository '{directive.name}' redefined, last value wins")
            acc.urls[directive.name] = directive.url
        else:
            out.warn(
                f"Ignoring deploy.config line {directive.line_number} "
                f"({directive.reason}): {directive.text}"
            )

    source = ConfigSource.CONFIG_FILE
    urls = acc.urls
    if not urls:
        if text is not None:
            out.warn("No repositories found in deploy.config, checking environment")
        urls = _entries_from_environment(environ, constants, out)
        source = ConfigSource.ENVIRONMENT
        for name, url in urls.items():
            out.info(f"Found repository from env: {name}={url}")
    if not urls:
        out.warn("No repository configuration found, using default frontend/backend")
        urls = {
            "frontend": constants.DEFAULT_FRONTEND_URL,
            "backend": constants.DEFAULT_BACKEND_URL,
        }
        source = ConfigSource.DEFAULTS

    for name in acc.cert_flags:
        if name not in urls:
            out.warn(f"'{name}{_CERT_FLAG_SUFFIX}' refers to an unknown repository")

    entries = tuple(
        RepositoryEntry(name, url, acc.cert_flags.get(name, False))
        for name, url in urls.items()
    )

    selector = (
        acc.registry
        or environ.get("DOCKER_REGISTRY_ENV")
        or environ.get("DOCKER_REGISTRY")
        or constants.DEFAULT_REGISTRY
    )
    cert_path = (
        acc.cert_path
        or environ.get("CERT_INSTALL_PATH")
        or constants.DEFAULT_CERT_INSTALL_PATH
    )

    return ResolvedConfig(
        registry_selector=selector,
        registry=normalize_registry(selector),
        entries=entries,
        cert_install_path=cert_path,
        source=source,
    )


def load_deploy_config(
    path: Path,
    environ: Mapping[str, str],
    console: ConsoleLike | None = None,
    constants: DeploymentConstants | None = None,
) -> ResolvedConfig:
    """Read ``path`` (if present) and resolve the deployment configuration."""
    out = coalesce_console(console)
    text: str | None = None
    if path.is_file():
        out.info(f"Loading deployment configuration from {path}")
        text = path.read_text(encoding="utf-8")
    else:
        out.warn(f"Could not load {path}, using fallback configuration")
    return resolve_config(text, environ, out, constants)
