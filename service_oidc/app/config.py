"""
Strategy configuration.
"""

from typing import Any, Awaitable, Callable, Dict, List, Optional, Union
from urllib.parse import urlsplit

import httpx
from pydantic import BaseModel, ConfigDict

from shared.config import BaseConfig
from shared.errors import ConfigurationError

SkipUserProfile = Union[
    bool,
    Callable[[Any, Dict[str, Any]], bool],
    Callable[[Any, Dict[str, Any]], Awaitable[bool]],
]

STRATEGY_NAME = "openidconnect"

REQUIRED_OPTIONS = ("issuer", "authorization_url", "token_url", "client_id")


class StrategyConfig(BaseModel):
    """Immutable settings of one OpenIDConnectStrategy instance."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    issuer: Optional[str] = None
    authorization_url: Optional[str] = None
    token_url: Optional[str] = None
    userinfo_url: Optional[str] = None
    callback_url: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None

    scope: Optional[Union[str, List[str]]] = None
    response_mode: Optional[str] = None
    prompt: Optional[str] = None
    display: Optional[str] = None
    ui_locales: Optional[str] = None
    login_hint: Optional[str] = None
    max_age: Optional[int] = None
    acr_values: Optional[str] = None
    id_token_hint: Optional[str] = None
    claims: Optional[Dict[str, Any]] = None

    nonce: bool = False
    pkce: Optional[str] = None

    session_key: Optional[str] = None
    store: Optional[Any] = None
    skip_user_profile: Optional[SkipUserProfile] = None
    pass_req_to_callback: bool = False

    custom_headers: Dict[str, str] = {}
    agent: Optional[httpx.AsyncBaseTransport] = None
    proxy: bool = False

    def check_required(self) -> None:
        for option in REQUIRED_OPTIONS:
            if not getattr(self, option):
                article = "an" if option[0] in "aeiou" else "a"
                raise ConfigurationError(
                    f"OpenIDConnectStrategy requires {article} {option} option",
                    details={"option": option}
                )

    def resolved_session_key(self) -> str:
        """Session key for this issuer.

        Defaults to ``openidconnect:<authorization endpoint hostname>``.
        """
        if self.session_key:
            return self.session_key
        return f"{STRATEGY_NAME}:{urlsplit(self.authorization_url or '').hostname}"

    @classmethod
    def from_settings(cls, settings: BaseConfig, **overrides: Any) -> "StrategyConfig":
        """Build a strategy config from environment-driven settings."""
        values: Dict[str, Any] = {
            "issuer": settings.issuer,
            "authorization_url": settings.authorization_url,
            "token_url": settings.token_url,
            "userinfo_url": settings.userinfo_url,
            "callback_url": settings.callback_url,
            "client_id": settings.client_id,
            "client_secret": settings.client_secret,
            "scope": settings.scope,
            "nonce": settings.nonce,
            "pkce": settings.pkce or None,
            "max_age": settings.max_age,
            "proxy": settings.trust_proxy,
        }
        values.update(overrides)
        return cls(**values)


class AuthenticateOptions(BaseModel):
    """Per-call overrides for ``authenticate``."""

    model_config = ConfigDict(frozen=True)

    callback_url: Optional[str] = None
    display: Optional[str] = None
    login_hint: Optional[str] = None
    prompt: Optional[str] = None
    scope: Optional[Union[str, List[str]]] = None
    state: Optional[Any] = None
