"""Test helpers shared across modules."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock


def warnings_of(console: MagicMock) -> list[str]:
    """Messages passed to ``console.warn``."""
    return [call.args[0] for call in console.warn.call_args_list]


def write_dockerfile(path: Path) -> Path:
    """Create a minimal build manifest in ``path``."""
    path.mkdir(parents=True, exist_ok=True)
    dockerfile = path / "Dockerfile"
    dockerfile.write_text("FROM alpine:3.20\n", encoding="utf-8")
    return dockerfile
