"""Configuration schema using Pydantic."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings


class AuthConfig(BaseModel):
    """Webhook authorization."""

    token: str = ""  # Shared secret; blank denies every request unless allow_no_auth
    allow_no_auth: bool = False


class ServerConfig(BaseModel):
    """Webhook HTTP endpoint."""

    host: str = "127.0.0.1"
    port: int = 18800
    webhook_path: str = "varbridge"  # Served at /hook/<webhook_path>
    max_body_bytes: int = 1024 * 1024


class HostConfig(BaseModel):
    """Automation host object store."""

    backend: str = "memory"  # memory | symcon
    snapshot_path: str = ""  # JSON tree loaded into the memory backend
    url: str = "http://127.0.0.1:3777/api/"
    username: str = ""
    password: str = ""
    timeout_seconds: float = 5.0


class RegistryConfig(BaseModel):
    """Device registry persistence."""

    sqlite_path: str = "~/.varbridge/data/registry.db"


class Config(BaseSettings):
    """Root configuration for varbridge."""
    auth: AuthConfig = Field(default_factory=AuthConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    host: HostConfig = Field(default_factory=HostConfig)
    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    debug_log: bool = False

    model_config = ConfigDict(
        env_prefix="VARBRIDGE_",
        env_nested_delimiter="__"
    )
