"""Tests for configuration loading and validation."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from terminogrid.config.settings import (
    RuntimeConfig,
    ServerConfig,
    Settings,
    TerminalConfig,
    load_settings,
)


class TestSettings:
    def test_default_settings(self) -> None:
        """Default Settings should be valid."""
        settings = Settings()
        assert settings.server.port == 8080
        assert settings.runtime.backend == "docker"
        assert settings.terminal.shell_candidates[0] == ["/bin/bash", "-li"]
        assert settings.terminal.settle_delay == 0.1

    def test_server_config_defaults(self) -> None:
        config = ServerConfig()
        assert config.ui_dir == Path("/ui")
        assert config.cors_origins == ["*"]

    def test_terminal_config_defaults(self) -> None:
        config = TerminalConfig()
        assert config.term_env == "xterm-256color"
        assert config.bootstrap is True
        assert len(config.shell_candidates) == 4

    def test_invalid_backend(self) -> None:
        with pytest.raises(ValidationError):
            RuntimeConfig(backend="podman")

    def test_empty_candidates_rejected(self) -> None:
        with pytest.raises(ValidationError):
            TerminalConfig(shell_candidates=[])

    def test_load_settings_missing_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """load_settings with missing file should return defaults."""
        monkeypatch.delenv("PORT", raising=False)
        settings = load_settings(tmp_path / "nonexistent.yaml")
        assert settings.server.port == 8080

    def test_load_settings_from_yaml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("PORT", raising=False)
        path = tmp_path / "terminogrid.yaml"
        path.write_text(
            "server:\n  port: 9000\n"
            "runtime:\n  backend: demo\n"
            "terminal:\n  shell_candidates: [['/bin/zsh', '-l']]\n  custom_prompt: false\n"
        )
        settings = load_settings(path)
        assert settings.server.port == 9000
        assert settings.runtime.backend == "demo"
        assert settings.terminal.shell_candidates == [["/bin/zsh", "-l"]]
        assert settings.terminal.custom_prompt is False

    def test_port_env_overrides_yaml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = tmp_path / "terminogrid.yaml"
        path.write_text("server:\n  port: 9000\n")
        monkeypatch.setenv("PORT", "7070")
        assert load_settings(path).server.port == 7070

    def test_prefixed_env_overrides_yaml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("PORT", raising=False)
        path = tmp_path / "terminogrid.yaml"
        path.write_text("runtime:\n  backend: docker\n  ping_timeout: 5.0\nserver:\n  port: 9000\n")
        monkeypatch.setenv("TERMINOGRID_RUNTIME__BACKEND", "demo")
        monkeypatch.setenv("TERMINOGRID_SERVER__PORT", "9100")
        settings = load_settings(path)
        assert settings.runtime.backend == "demo"
        assert settings.runtime.ping_timeout == 5.0
        assert settings.server.port == 9100

    def test_shipped_config_yields_to_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        shipped = Path(__file__).resolve().parents[3] / "config" / "terminogrid.yaml"
        monkeypatch.setenv("TERMINOGRID_RUNTIME__BACKEND", "demo")
        assert load_settings(shipped).runtime.backend == "demo"
