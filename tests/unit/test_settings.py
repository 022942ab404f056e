"""Tests for environment-driven Settings."""

from __future__ import annotations

import pytest

from stowage.service.artifact_manager import ArtifactManager
from stowage.settings import Settings
from tests.conftest import make_project


class TestSettings:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("PORT", raising=False)
        settings = Settings(_env_file=None)
        assert settings.project_output_root == "out"
        assert settings.effective_port == 8000

    def test_prefixed_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STOWAGE_PROJECT_OUTPUT_ROOT", "build")
        monkeypatch.setenv("STOWAGE_API_SERVER_PORT", "9001")
        monkeypatch.delenv("PORT", raising=False)
        settings = Settings(_env_file=None)
        assert settings.project_output_root == "build"
        assert settings.effective_port == 9001

    def test_injected_port_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STOWAGE_API_SERVER_PORT", "9001")
        monkeypatch.setenv("PORT", "8080")
        assert Settings(_env_file=None).effective_port == 8080

    def test_output_root_drives_default_output_path(self) -> None:
        manager = ArtifactManager(
            make_project(), settings=Settings(_env_file=None, project_output_root="dist/")
        )
        artifact = manager.add_artifact("Web App", "exploded")
        assert artifact.output_path == "dist/artifacts/Web_App"
