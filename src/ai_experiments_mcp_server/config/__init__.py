"""Configuration management."""

from .settings import Config, ConfigurationError, create_default_config, load_config

__all__ = ["Config", "ConfigurationError", "load_config", "create_default_config"]
