"""Shared utilities: configuration management."""

from hazcom.utils.config_manager import ConfigManager, get_config, DEFAULT_CONFIG_PATH

__all__ = ["ConfigManager", "get_config", "DEFAULT_CONFIG_PATH"]
