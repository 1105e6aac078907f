"""
Configuration schema for the stock data gateway.

This module defines the configuration hierarchy using Pydantic for
validation. Configuration can be loaded from YAML files with environment
variable substitution.

Example:
    settings = GatewaySettings.from_yaml("config/gateway.yaml")
    print(settings.upstream.read_timeout_seconds)
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import List, Optional, Union

import yaml
from pydantic import BaseModel, Field, model_validator


# ---------------------------------------------------------------------------
# Upstream Configuration
# ---------------------------------------------------------------------------

class RateLimitConfig(BaseModel):
    """Client-side throttle for upstream requests."""
    requests_per_minute: int = Field(
        default=0, ge=0,
        description="Maximum upstream requests per minute, 0 disables throttling"
    )


class UpstreamConfig(BaseModel):
    """Configuration for the upstream data provider."""
    base_url: str = "https://www.alphavantage.co"
    api_key: str = "demo"
    api_key_env: Optional[str] = Field(
        default="ALPHAVANTAGE_APIKEY",
        description="Environment variable that overrides api_key when set"
    )
    connect_timeout_seconds: float = Field(default=5.0, gt=0)
    read_timeout_seconds: float = Field(default=10.0, gt=0)
    intraday_interval: str = Field(default="5min", description="1min, 5min, 15min, 30min or 60min")
    pool_size: int = Field(default=20, ge=1, description="HTTP connection pool size")
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)

    @model_validator(mode="after")
    def resolve_api_key(self) -> "UpstreamConfig":
        """Take the API key from the environment when the variable is set."""
        if self.api_key_env:
            env_value = os.environ.get(self.api_key_env)
            if env_value:
                self.api_key = env_value
        return self

    @property
    def api_key_from_env(self) -> bool:
        """Whether api_key currently holds the environment variable's value."""
        return bool(self.api_key_env) and os.environ.get(self.api_key_env) == self.api_key

    @property
    def timeout(self) -> tuple[float, float]:
        """(connect, read) timeout pair in seconds."""
        return (self.connect_timeout_seconds, self.read_timeout_seconds)


# ---------------------------------------------------------------------------
# Cache Configuration
# ---------------------------------------------------------------------------

class CacheConfig(BaseModel):
    """In-memory cache configuration."""
    coalesce_requests: bool = Field(
        default=True,
        description="Share one upstream call between concurrent misses on the same key"
    )


# ---------------------------------------------------------------------------
# Server and Logging Configuration
# ---------------------------------------------------------------------------

class ServerConfig(BaseModel):
    """HTTP server configuration."""
    host: str = "0.0.0.0"
    port: int = Field(default=8080, ge=1, le=65535)
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = Field(default="INFO")
    format: str = Field(default="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    datefmt: str = Field(default="%Y-%m-%d %H:%M:%S")

    @model_validator(mode="after")
    def validate_level(self) -> "LoggingConfig":
        """Ensure the level is a known logging level name."""
        self.level = self.level.upper()
        if not isinstance(logging.getLevelName(self.level), int):
            raise ValueError(f"Unknown logging level: {self.level}")
        return self

    def apply(self) -> None:
        """Configure the root logger."""
        logging.basicConfig(
            level=self.level,
            format=self.format,
            datefmt=self.datefmt,
            force=True,
        )


# ---------------------------------------------------------------------------
# Main Configuration
# ---------------------------------------------------------------------------

class GatewaySettings(BaseModel):
    """
    Root configuration for the gateway.

    Example:
        settings = GatewaySettings.from_yaml("config/gateway.yaml")
    """

    name: str = Field(default="stockgateway")
    upstream: UpstreamConfig = Field(default_factory=UpstreamConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, path: Union[str, Path], env_override: bool = True) -> "GatewaySettings":
        """
        Load configuration from a YAML file with optional environment variable overrides.

        Environment variables are substituted using ${VAR_NAME} syntax in the YAML file.

        Args:
            path: Path to the YAML configuration file
            env_override: Whether to substitute environment variables

        Returns:
            Validated GatewaySettings instance

        Raises:
            FileNotFoundError: If the configuration file doesn't exist
            ValidationError: If the configuration is invalid
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path) as f:
            content = f.read()

        if env_override:
            content = cls._substitute_env_vars(content)

        data = yaml.safe_load(content) or {}
        return cls.model_validate(data)

    @staticmethod
    def _substitute_env_vars(content: str) -> str:
        """Substitute ${VAR_NAME} patterns with environment variable values."""
        pattern = r'\$\{(\w+)\}'

        def replace(match: re.Match) -> str:
            var_name = match.group(1)
            return os.environ.get(var_name, match.group(0))

        return re.sub(pattern, replace, content)

    def to_yaml(self, path: Union[str, Path]) -> None:
        """
        Save configuration to a YAML file.

        An API key taken from the environment is written as a ``${VAR}``
        placeholder, never as its value.

        Args:
            path: Destination path for the YAML file
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        data = self.model_dump()
        if self.upstream.api_key_from_env:
            data["upstream"]["api_key"] = f"${{{self.upstream.api_key_env}}}"

        with open(path, 'w') as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)


def create_default_settings() -> GatewaySettings:
    """Create settings with every default applied."""
    return GatewaySettings()
