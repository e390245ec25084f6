"""
Configuration management for the AI Experiments MCP Server.

Handles loading, validation, and management of server configuration
from files, a local .env file and environment variables.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

Environment = Literal["development", "staging", "production", "test"]
AppendStrategy = Literal["serialized", "naive"]


class ConfigurationError(Exception):
    """Raised when the configuration is missing or malformed."""

    def __init__(self, message: str, errors: Optional[List[Dict[str, str]]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class BackendConfig(BaseModel):
    """Configuration for the AI experiments backend connection."""

    api_url: str = Field(description="Backend base URL")
    api_secret: str = Field(description="Shared secret sent with every backend request")
    timeout_seconds: float = Field(default=30.0, gt=0, description="Total request timeout")

    @field_validator("api_url")
    @classmethod
    def validate_api_url(cls, v: str) -> str:
        """Require an http(s) URL and drop any trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Invalid backend URL: {v}. Must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("api_secret", mode="before")
    @classmethod
    def resolve_api_secret(cls, v: Any) -> Any:
        """Resolve the secret from an environment variable reference like ${MCP_SECRET}."""
        if isinstance(v, str) and v.startswith("${") and v.endswith("}"):
            return os.getenv(v[2:-1])
        return v

    @field_validator("api_secret")
    @classmethod
    def validate_api_secret(cls, v: str) -> str:
        if not v:
            raise ValueError("Backend secret cannot be empty")
        return v


class ServerConfig(BaseModel):
    """Configuration for MCP server behavior."""

    host: str = Field(default="0.0.0.0", description="Interface to listen on")
    port: int = Field(ge=1, le=65535, description="Port to listen on")
    log_level: str = Field(default="INFO", description="Logging level")
    sse_path: str = Field(default="/sse", description="Event stream endpoint")
    message_path: str = Field(default="/messages", description="Message post endpoint")
    cors_enabled: bool = Field(default=True, description="Send permissive CORS headers")
    debug_log_path: str = Field(
        default="logs.jsonl", description="Handler input/output log used in development"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper


class MemoryConfig(BaseModel):
    """Configuration for user memory storage."""

    key_prefix: str = Field(default="reactAIExperiments", description="Key/value namespace")
    append_strategy: AppendStrategy = Field(
        default="serialized",
        description="'serialized' locks appends per user, 'naive' is a plain read-modify-write",
    )


class HandlerConfig(BaseModel):
    """Configuration for an individual tool, resource or prompt."""

    enabled: bool = Field(default=True, description="Whether the handler is registered")


class HandlersConfig(BaseModel):
    """Configuration for all available handlers."""

    user_memories: HandlerConfig = Field(default_factory=HandlerConfig)
    save_user_info_to_memory: HandlerConfig = Field(default_factory=HandlerConfig)
    get_relevant_docs: HandlerConfig = Field(default_factory=HandlerConfig)
    get_url_content: HandlerConfig = Field(default_factory=HandlerConfig)
    execute_code: HandlerConfig = Field(default_factory=HandlerConfig)
    persona_prompt: HandlerConfig = Field(default_factory=HandlerConfig)
    memory_prompt: HandlerConfig = Field(default_factory=HandlerConfig)


class Config(BaseModel):
    """Main configuration object."""

    model_config = ConfigDict(extra="forbid")

    version: str = Field(default="1.0.0", description="Server version")
    environment: Environment = Field(description="Runtime mode")
    server: ServerConfig
    backend: BackendConfig
    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    handlers: HandlersConfig = Field(default_factory=HandlersConfig)

    @property
    def debug_logging_enabled(self) -> bool:
        """Handler inputs and outputs are recorded only in development."""
        return self.environment == "development"


# Environment variable -> (section, field). Later entries win over the NODE_* names.
ENV_OVERRIDES = {
    "NODE_ENV": (None, "environment"),
    "NODE_AI_EXPERIMENTS_SERVER_URL": ("backend", "api_url"),
    "MCP_ENV": (None, "environment"),
    "PORT": ("server", "port"),
    "MCP_LOG_LEVEL": ("server", "log_level"),
    "AI_EXPERIMENTS_SERVER_URL": ("backend", "api_url"),
    "MCP_SECRET": ("backend", "api_secret"),
}


def load_config(config_path: Optional[Path] = None, env_file: Optional[Path] = None) -> Config:
    """
    Load configuration from file and environment variables.

    Args:
        config_path: Path to configuration file. If None, looks for
                    AI_EXPERIMENTS_MCP_CONFIG_PATH environment variable.
        env_file: Optional .env file; defaults to ./.env when present.

    Returns:
        Loaded and validated configuration

    Raises:
        FileNotFoundError: If config file specified but not found
        ConfigurationError: If configuration is missing or invalid
    """
    load_dotenv(dotenv_path=env_file or Path(".env"), override=False)

    if config_path is None:
        env_path = os.getenv("AI_EXPERIMENTS_MCP_CONFIG_PATH")
        if env_path:
            config_path = Path(env_path)

    config_data: Dict[str, Any] = {}
    if config_path and config_path.exists():
        with open(config_path, "r") as f:
            config_data = json.load(f)
    elif config_path:
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    env_overrides: Dict[str, Any] = {}
    for env_var, (section, field) in ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if not value:
            continue
        if section is None:
            env_overrides[field] = value
        else:
            env_overrides.setdefault(section, {})[field] = value

    if env_overrides:
        config_data = _deep_merge(config_data, env_overrides)

    try:
        return Config(**config_data)
    except ValidationError as e:
        errors = [
            {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
            for error in e.errors()
        ]
        summary = ", ".join(f"{error['field']}: {error['message']}" for error in errors)
        raise ConfigurationError(f"Invalid configuration: {summary}", errors=errors) from e


def create_default_config(config_path: Path) -> None:
    """
    Create a default configuration file.

    Args:
        config_path: Path where to create the configuration file
    """
    default_config = {
        "version": "1.0.0",
        "environment": "production",
        "server": {
            "host": "0.0.0.0",
            "port": 3001,
            "log_level": "INFO",
            "sse_path": "/sse",
            "message_path": "/messages",
            "cors_enabled": True,
            "debug_log_path": "logs.jsonl",
        },
        "backend": {
            "api_url": "http://localhost:3000",
            "api_secret": "${MCP_SECRET}",
            "timeout_seconds": 30.0,
        },
        "memory": {
            "key_prefix": "reactAIExperiments",
            "append_strategy": "serialized",
        },
        "handlers": {name: {"enabled": True} for name in HandlersConfig.model_fields},
    }

    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w") as f:
        json.dump(default_config, f, indent=2)


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Override dictionary

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result
