"""Configuration loading and management."""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from ..utils.logging import ConfigurationError

ENV_PREFIX = "PANE_ORCHESTRATOR_"

CONFIG_SEARCH_PATHS = (
    Path("pane-orchestrator.yaml"),
    Path("pane-orchestrator.yml"),
    Path("~/.config/pane-orchestrator/config.yaml"),
    Path("~/.pane-orchestrator.yaml"),
)


class OrchestratorConfig(BaseModel):
    """Configuration model for pane-orchestrator."""

    # Session naming and geometry
    session_prefix: str = Field(
        default="ai-agents-miyabi",
        description="Prefix marking tmux sessions owned by this system",
    )
    default_columns: int = Field(default=120, description="Width of new sessions")
    default_rows: int = Field(default=30, description="Height of new sessions")

    # Layout and agent placement
    max_layout_agents: int = Field(
        default=10, description="Most agents a window-per-agent layout places"
    )
    agent_path_template: str = Field(
        default="./src/agents/{agent_id}",
        description="Working directory for an agent's pane",
    )

    # tmux access
    command_timeout: float | None = Field(
        default=30.0, description="Seconds before a tmux command times out (None: never)"
    )
    tmux_socket_name: str | None = Field(
        default=None, description="tmux socket name (-L), default server if unset"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: str | None = Field(default=None, description="Log file path")
    structured_logs: bool = Field(default=True, description="Emit JSON log lines")

    @field_validator("default_columns", "default_rows", "max_layout_agents")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be at least 1")
        return value

    @field_validator("session_prefix")
    @classmethod
    def _prefix_not_blank(cls, value: str) -> str:
        if not value.strip() or ":" in value or "." in value:
            raise ValueError("must be non-empty and free of ':' and '.'")
        return value

    @field_validator("agent_path_template")
    @classmethod
    def _has_agent_placeholder(cls, value: str) -> str:
        if "{agent_id}" not in value:
            raise ValueError("must contain '{agent_id}'")
        return value


def find_config_file(custom_path: str | None = None) -> Path | None:
    """Find configuration file in standard locations."""
    if custom_path:
        path = Path(custom_path).expanduser()
        if path.exists():
            return path
        raise FileNotFoundError(f"Config file not found: {custom_path}")

    for candidate in CONFIG_SEARCH_PATHS:
        path = candidate.expanduser()
        if not path.is_absolute():
            path = Path.cwd() / path
        if path.exists():
            return path

    return None


def load_config_file(config_path: Path) -> dict[str, Any]:
    """Load configuration from YAML file."""
    try:
        with open(config_path) as f:
            return yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in config file {config_path}: {e}")
    except OSError as e:
        raise ConfigurationError(f"Failed to read config file {config_path}: {e}")


def load_env_vars() -> dict[str, Any]:
    """Load configuration from environment variables."""
    config: dict[str, Any] = {}

    for field_name in OrchestratorConfig.model_fields:
        env_var = f"{ENV_PREFIX}{field_name.upper()}"
        if env_var in os.environ:
            # pydantic coerces the string to the field's type
            config[field_name] = os.environ[env_var]

    return config


def load_config(
    config_path: str | None = None,
    profile: str | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> OrchestratorConfig:
    """Load configuration from file and environment variables.

    Precedence order (highest to lowest):
    1. CLI flag overrides
    2. Environment variables
    3. Configuration file (with profile support)
    4. Default values
    """
    config_data: dict[str, Any] = {}

    config_file = find_config_file(config_path)
    if config_file:
        file_data = load_config_file(config_file)
        config_data.update({k: v for k, v in file_data.items() if k != "profiles"})

        if profile:
            profiles = file_data.get("profiles") or {}
            if profile not in profiles:
                raise ConfigurationError(
                    f"Profile '{profile}' not found in {config_file}"
                )
            config_data.update(profiles[profile])

    config_data.update(load_env_vars())

    if cli_overrides:
        config_data.update(cli_overrides)

    try:
        return OrchestratorConfig(**config_data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}")


def save_config(config: OrchestratorConfig, config_path: str | None = None) -> Path:
    """Save configuration to file."""
    if config_path:
        path = Path(config_path).expanduser()
    else:
        path = CONFIG_SEARCH_PATHS[2].expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w") as f:
        yaml.dump(config.model_dump(), f, default_flow_style=False, sort_keys=True)

    return path
