"""Trust certificate injection.

Some images must trust private certificate authorities. Certificate files
(``.crt``, ``.pem``, ``.cer``) are discovered in the project's ``assets``
directory (top level only, subdirectories are not scanned) and baked into a
derived image layer that installs them and refreshes the system trust
store. The derived image replaces the original under every tag.
"""

from __future__ import annotations

import shlex
import shutil
import tempfile
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from image_forge.utils.console_like import ConsoleLike, coalesce_console

from .constants import DeploymentConstants
from .errors import CertificateInjectionError

if TYPE_CHECKING:
    from .shell_commands import ShellCommands

# Refresh whichever trust store tooling the base image ships
TRUST_STORE_REFRESH = (
    "if command -v update-ca-certificates >/dev/null 2>&1; then "
    "update-ca-certificates; "
    "elif command -v update-ca-trust >/dev/null 2>&1; then "
    "update-ca-trust extract; "
    "elif command -v trust >/dev/null 2>&1; then "
    "trust extract-compat; "
    "else echo 'No trust store refresh command found' >&2; exit 1; fi"
)

_BUNDLE_DIR = "certs"


@dataclass(frozen=True)
class CertificateBundle:
    """Certificate files discovered for one publish operation."""

    files: tuple[Path, ...]

    def __bool__(self) -> bool:
        return bool(self.files)

    def __len__(self) -> int:
        return len(self.files)

    @property
    def names(self) -> list[str]:
        return [path.name for path in self.files]

    @classmethod
    def discover(
        cls, assets_dir: Path, constants: DeploymentConstants | None = None
    ) -> CertificateBundle:
        """Collect certificate files directly inside ``assets_dir``.

        A missing directory yields an empty bundle.
        """
        constants = constants or DeploymentConstants()
        if not assets_dir.is_dir():
            return cls(files=())
        files = sorted(
            path
            for path in assets_dir.iterdir()
            if path.is_file() and path.suffix.lower() in constants.CERT_EXTENSIONS
        )
        return cls(files=tuple(files))


def render_certificate_dockerfile(
    base_image: str, install_path: str, user: str | None
) -> str:
    """Render the Dockerfile deriving a certificate-bearing image.

    Every file is installed with a ``.crt`` suffix, the name
    ``update-ca-certificates`` requires. When the base image runs as a
    non-root user, that user is restored after the refresh.
    """
    lines = [
        f"FROM {base_image}",
        "USER root",
        f"COPY {_BUNDLE_DIR}/ {install_path.rstrip('/')}/",
        f"RUN sh -c {shlex.quote(TRUST_STORE_REFRESH)}",
    ]
    if user and user not in ("root", "0"):
        lines.append(f"USER {user}")
    return "\n".join(lines) + "\n"


class CertificateInjector:
    """Installs a certificate bundle into already-built images."""

    def __init__(
        self,
        commands: ShellCommands,
        console: ConsoleLike | None = None,
    ) -> None:
        self.commands = commands
        self.console = coalesce_console(console)

    def inject(
        self,
        entry_name: str,
        tags: Sequence[str],
        bundle: CertificateBundle,
        install_path: str,
    ) -> None:
        """Replace the image behind ``tags`` with a certificate-bearing variant.

        The derived image is built once from the first tag and applied to
        every tag, so each tag ends up with the certificates installed
        exactly once.

        Args:
            entry_name: Entry being published (for error context)
            tags: Tags currently pointing at the freshly built image
            bundle: Certificates to install
            install_path: Directory inside the image receiving the certificates

        Raises:
            CertificateInjectionError: If the derived image cannot be built
        """
        if not tags or not bundle:
            return

        base_image = tags[0]
        user = self.commands.docker.image_user(base_image)
        self.console.info(
            f"Installing {len(bundle)} certificate(s) into {entry_name} at {install_path}"
        )

        with tempfile.TemporaryDirectory(prefix="image-forge-certs-") as tmp:
            context = Path(tmp)
            cert_dir = context / _BUNDLE_DIR
            cert_dir.mkdir()
            for cert in bundle.files:
                try:
                    shutil.copyfile(cert, cert_dir / _installed_name(cert))
                except OSError as exc:
                    raise CertificateInjectionError(
                        entry_name,
                        f"Could not read certificate {cert.name}",
                        details=str(exc),
                    ) from exc

            dockerfile = context / "Dockerfile"
            dockerfile.write_text(
                render_certificate_dockerfile(base_image, install_path, user),
                encoding="utf-8",
            )

            result = self.commands.docker.build(
                context,
                dockerfile,
                list(tags),
                on_output=lambda line: logger.debug(f"[certs:{entry_name}] {line}"),
            )

        if not result.success:
            raise CertificateInjectionError(
                entry_name,
                f"Failed to install certificates in image: {base_image}",
                details=result.tail(),
            )
        self.console.ok(f"Certificates installed in {len(tags)} tag(s) of {entry_name}")


def _installed_name(cert: Path) -> str:
    if cert.suffix.lower() == ".crt":
        return cert.name
    return f"{cert.name}.crt"
