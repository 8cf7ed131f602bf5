"""Tests for project root detection."""

from pathlib import Path

import pytest

from image_forge.utils.paths import PROJECT_ROOT_ENV, get_project_root


def test_environment_override(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv(PROJECT_ROOT_ENV, str(tmp_path))

    assert get_project_root() == tmp_path.resolve()


def test_walks_up_to_deploy_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    (tmp_path / "deploy.config").write_text("")
    nested = tmp_path / "api" / "src"
    nested.mkdir(parents=True)
    monkeypatch.chdir(nested)

    assert get_project_root() == tmp_path.resolve()
