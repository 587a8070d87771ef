"""Configuration management for terminogrid.

Loads settings from a YAML configuration file with environment variable
overrides. Supports .env files.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

from terminogrid.session.shell import DEFAULT_SHELL_CANDIDATES

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/terminogrid.yaml")


class ServerConfig(BaseModel):
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8080, ge=1, le=65535)
    ui_dir: Path = Field(default=Path("/ui"), description="Static dashboard files")
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])


class RuntimeConfig(BaseModel):
    backend: Literal["docker", "demo"] = Field(default="docker")
    docker_url: str | None = Field(default=None, description="None reads DOCKER_HOST")
    ping_timeout: float = Field(default=2.0, gt=0)


class TerminalConfig(BaseModel):
    shell_candidates: list[list[str]] = Field(
        default_factory=lambda: [list(c) for c in DEFAULT_SHELL_CANDIDATES],
        min_length=1,
    )
    term_env: str = Field(default="xterm-256color")
    force_color: bool = Field(default=True)
    custom_prompt: bool = Field(default=True)
    bootstrap: bool = Field(default=True, description="Send the setup script into new shells")
    settle_delay: float = Field(default=0.1, ge=0)


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO")
    format: str = Field(
        default="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    file: str | None = Field(default=None)


class Settings(BaseSettings):
    """Root configuration for terminogrid.

    Loads from YAML file and supports environment variable overrides.
    Reads .env files automatically.
    """

    model_config = {
        "env_prefix": "TERMINOGRID_",
        "env_nested_delimiter": "__",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    server: ServerConfig = Field(default_factory=ServerConfig)
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)
    terminal: TerminalConfig = Field(default_factory=TerminalConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Load settings from YAML + .env + environment variables.

    Priority: env vars > .env file > YAML file > defaults
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    yaml_data: dict = {}
    if path.exists():
        with open(path) as f:
            yaml_data = yaml.safe_load(f) or {}
        logger.info("Loaded configuration from %s", path)
    else:
        logger.warning("Config file %s not found, using defaults + env vars", path)

    _apply_env_overrides(yaml_data)

    # Explicit env and .env values take precedence over the YAML
    _deep_update(yaml_data, Settings().model_dump(exclude_unset=True))

    return Settings(**yaml_data)


def _apply_env_overrides(yaml_data: dict) -> None:
    """Apply environment variable overrides for non-prefixed vars."""
    port = os.environ.get("PORT", "")
    if port:
        yaml_data.setdefault("server", {})["port"] = port


def _deep_update(base: dict, updates: dict) -> None:
    """Recursively merge ``updates`` into ``base`` in place."""
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_update(base[key], value)
        else:
            base[key] = value
