"""Configuration management module."""

from .loader import OrchestratorConfig, find_config_file, load_config, save_config

__all__ = ["OrchestratorConfig", "load_config", "save_config", "find_config_file"]
