"""Configuration management for the Homologaciones MCP server.

Supports YAML configuration files and environment variable overrides.
Configuration is loaded once and cached for performance.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, ClassVar, Optional

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AuthSettings(BaseSettings):
    """Shared-secret authentication configuration."""
    secret: Optional[str] = Field(default=None, description="Expected shared secret")

    model_config = SettingsConfigDict(
        env_prefix="AUTH_",
        env_file=".env",
        extra="ignore"
    )


class SessionSettings(BaseSettings):
    """Session lifetime configuration."""
    ttl_minutes: float = Field(default=30, gt=0, description="Inactivity window before expiry")
    sweep_interval_minutes: float = Field(default=10, gt=0, description="Background sweep period")

    model_config = SettingsConfigDict(
        env_prefix="SESSION_",
        env_file=".env",
        extra="ignore"
    )


class DatabaseSettings(BaseSettings):
    """PostgreSQL connection configuration."""
    host: Optional[str] = Field(default=None)
    port: Optional[int] = Field(default=None)
    username: Optional[str] = Field(default=None)
    password: Optional[str] = Field(default=None)
    name: Optional[str] = Field(default=None, description="Database name")
    schema_name: Optional[str] = Field(default="public", description="Schema inspected by the tools")

    # SSL without certificate verification
    sslmode: str = Field(default="require")
    connect_timeout_seconds: int = Field(default=30, gt=0)
    query_timeout_seconds: int = Field(default=30, gt=0)

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        extra="ignore"
    )

    REQUIRED_FIELDS: ClassVar[tuple[str, ...]] = ("host", "port", "username", "password", "name")

    def missing(self) -> list[str]:
        """Return the environment variable names of unset required fields."""
        return [
            f"DB_{field.upper()}"
            for field in self.REQUIRED_FIELDS
            if getattr(self, field) in (None, "")
        ]


class HomologacionesSettings(BaseSettings):
    """Remote approval-record API configuration."""
    base_url: str = Field(default="https://apphomologaciones-stg.cunapp.pro")
    path: str = Field(default="/api/v1/homologaciones")
    status: str = Field(default="Aprobado", description="Value sent as the estatus filter")
    timeout_seconds: float = Field(default=30.0, gt=0)

    model_config = SettingsConfigDict(
        env_prefix="HOMOLOGACIONES_",
        env_file=".env",
        extra="ignore"
    )


class AuditSettings(BaseSettings):
    """Audit log configuration."""
    enabled: bool = Field(default=True)
    log_path: str = Field(default="logs/audit.log")
    buffer_size: int = Field(default=100, gt=0)

    model_config = SettingsConfigDict(
        env_prefix="AUDIT_",
        env_file=".env",
        extra="ignore"
    )


class Settings(BaseSettings):
    """Main application settings."""
    environment: str = Field(default="development")
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")
    server_name: str = Field(default="homologaciones-mcp")
    server_version: str = Field(default="1.0.0")

    # Component settings
    auth: AuthSettings = Field(default_factory=AuthSettings)
    session: SessionSettings = Field(default_factory=SessionSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    homologaciones: HomologacionesSettings = Field(default_factory=HomologacionesSettings)
    audit: AuditSettings = Field(default_factory=AuditSettings)

    model_config = SettingsConfigDict(
        env_prefix="MCP_",
        env_file=".env",
        extra="ignore"
    )

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        data = load_yaml_config(path)
        return cls(**data)


def load_yaml_config(path: str | Path) -> dict[str, Any]:
    """Load a YAML configuration file."""
    path = Path(path)
    if not path.exists():
        return {}

    with open(path) as f:
        return yaml.safe_load(f) or {}


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    config_path = os.environ.get("MCP_CONFIG_PATH", "config/settings.yaml")
    return Settings.from_yaml(config_path)
