"""
OpenID Provider discovery (``/.well-known/openid-configuration``).
"""

from typing import Any, Dict, Optional

import httpx
import pydantic
from pydantic import BaseModel, Field

from shared.errors import ExternalServiceError
from shared.logging import get_logger

WELL_KNOWN_PATH = "/.well-known/openid-configuration"

logger = get_logger("oidc.discovery")


class ProviderMetadata(BaseModel):
    """Endpoints advertised by an OpenID Provider."""

    issuer: str
    authorization_url: str = Field(alias="authorization_endpoint")
    token_url: str = Field(alias="token_endpoint")
    userinfo_url: Optional[str] = Field(default=None, alias="userinfo_endpoint")
    registration_url: Optional[str] = Field(default=None, alias="registration_endpoint")
    raw: Dict[str, Any] = Field(default_factory=dict, exclude=True)

    def strategy_options(self) -> Dict[str, Any]:
        """Options to merge into a StrategyConfig."""
        return {
            "issuer": self.issuer,
            "authorization_url": self.authorization_url,
            "token_url": self.token_url,
            "userinfo_url": self.userinfo_url,
        }


async def discover(issuer: str, transport: Optional[httpx.AsyncBaseTransport] = None,
                   timeout: float = 10.0) -> ProviderMetadata:
    """Fetch and parse the provider configuration for ``issuer``."""
    url = issuer.rstrip("/") + WELL_KNOWN_PATH

    async with httpx.AsyncClient(transport=transport, timeout=timeout) as client:
        response = await client.get(url, headers={"Accept": "application/json"})

    if response.status_code != 200:
        logger.error("Provider discovery failed", issuer=issuer, status_code=response.status_code)
        raise ExternalServiceError(
            "openid-provider",
            f"OpenID provider configuration request failed: {response.status_code}",
            details={"status_code": response.status_code, "url": url}
        )

    try:
        data = response.json()
    except ValueError as e:
        raise ExternalServiceError("openid-provider", "Invalid provider configuration document") from e

    try:
        metadata = ProviderMetadata.model_validate(data)
    except pydantic.ValidationError as e:
        raise ExternalServiceError("openid-provider", "Incomplete provider configuration document") from e
    metadata.raw = data
    logger.info("Provider configuration discovered", issuer=metadata.issuer)
    return metadata
