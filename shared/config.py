"""
Shared configuration management for the OIDC relying party.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="OIDC_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # OpenID Provider
    issuer: Optional[str] = Field(default=None)
    authorization_url: Optional[str] = Field(default=None)
    token_url: Optional[str] = Field(default=None)
    userinfo_url: Optional[str] = Field(default=None)
    discover: bool = Field(default=False)

    # Client registration
    client_id: Optional[str] = Field(default=None)
    client_secret: Optional[str] = Field(default=None)
    callback_url: str = Field(default="/callback")
    scope: str = Field(default="openid profile email")
    nonce: bool = Field(default=True)
    pkce: Optional[str] = Field(default="S256")
    max_age: Optional[int] = Field(default=None)
    trust_proxy: bool = Field(default=False)

    # Sessions
    session_secret: str = Field(default="change-me")
    session_cookie: str = Field(default="oidc_session")
    session_max_age: int = Field(default=14 * 24 * 60 * 60)


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
