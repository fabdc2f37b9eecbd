"""
OAuth 2.0 transport and the authorization code exchange.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple
from urllib.parse import parse_qsl

import httpx

from shared.logging import get_logger
from shared.metrics import MetricsCollector

from .errors import InternalOAuthError, OIDCProtocolError, PKCEError, TokenError
from .profile import Profile


class OAuth2ResponseError(Exception):
    """Non-2xx response from an OAuth 2.0 endpoint."""

    def __init__(self, status_code: int, data: str):
        self.status_code = status_code
        self.data = data
        super().__init__(f"OAuth 2.0 endpoint returned HTTP {status_code}")


class OAuth2Client:
    """Minimal OAuth 2.0 client for the token and protected-resource calls.

    Client credentials are sent in the form body. A fresh
    ``httpx.AsyncClient`` is opened per call on ``transport``.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: Optional[str],
        token_url: str,
        custom_headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_url = token_url
        self.custom_headers = dict(custom_headers or {})
        self.transport = transport
        self.timeout = timeout

    async def _request(self, method: str, url: str, headers: Dict[str, str],
                       data: Optional[Dict[str, str]] = None) -> httpx.Response:
        async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
            response = await client.request(method, url, headers={**self.custom_headers, **headers}, data=data)

        if not 200 <= response.status_code <= 299:
            raise OAuth2ResponseError(response.status_code, response.text)
        return response

    async def get_access_token(self, code: str,
                               params: Dict[str, str]) -> Tuple[Optional[str], Optional[str], Dict[str, Any]]:
        """Exchange ``code`` at the token endpoint.

        Returns ``(access_token, refresh_token, params)`` where ``params`` is
        the rest of the token response.
        """
        post_data = dict(params)
        post_data["client_id"] = self.client_id
        if self.client_secret:
            post_data["client_secret"] = self.client_secret
        post_data["code"] = code

        response = await self._request(
            "POST",
            self.token_url,
            {"Content-Type": "application/x-www-form-urlencoded", "Accept": "application/json"},
            data=post_data,
        )

        try:
            results = response.json()
        except ValueError:
            # Some providers answer with a form-encoded body
            results = dict(parse_qsl(response.text))
        if not isinstance(results, dict):
            results = {}

        access_token = results.get("access_token")
        refresh_token = results.pop("refresh_token", None)
        return access_token, refresh_token, results

    async def get(self, url: str, access_token: str) -> Tuple[str, httpx.Response]:
        """GET a protected resource with a bearer token."""
        response = await self._request("GET", url, {"Authorization": f"Bearer {access_token}"})
        return response.text, response


@dataclass
class TokenResponse:
    """Successful token endpoint response."""

    access_token: Optional[str]
    refresh_token: Optional[str]
    params: Dict[str, Any] = field(default_factory=dict)

    @property
    def id_token(self) -> str:
        return self.params["id_token"]


class TokenExchange:
    """Drives the code-for-token exchange and the userinfo fetch.

    Keeps OP-reported token errors (``TokenError``) apart from transport
    failures (``InternalOAuthError``).
    """

    def __init__(self, client: OAuth2Client, metrics: Optional[MetricsCollector] = None):
        self.client = client
        self.metrics = metrics
        self.logger = get_logger("oidc.token")

    async def exchange(self, code: str, redirect_uri: Optional[str] = None,
                       code_verifier: Optional[str] = None, pkce: bool = False) -> TokenResponse:
        params = {"grant_type": "authorization_code"}
        if redirect_uri:
            params["redirect_uri"] = redirect_uri
        if pkce:
            if not code_verifier:
                raise PKCEError()
            params["code_verifier"] = code_verifier

        try:
            access_token, refresh_token, results = await self.client.get_access_token(code, params)
        except OAuth2ResponseError as e:
            self._record("error")
            token_error = _parse_token_error(e)
            if token_error is not None:
                self.logger.warning(
                    "Token endpoint returned an error",
                    status_code=e.status_code,
                    error=token_error.oauth_code
                )
                raise token_error from e
            self.logger.error("Token request failed", status_code=e.status_code)
            raise InternalOAuthError("Failed to obtain access token", e) from e
        except httpx.HTTPError as e:
            self._record("error")
            self.logger.error("Token request failed", error=str(e))
            raise InternalOAuthError("Failed to obtain access token", e) from e

        if not results.get("id_token"):
            self._record("error")
            raise OIDCProtocolError("ID token not present in token response")

        self._record("ok")
        self.logger.info("Authorization code exchanged", token_type=results.get("token_type"))
        return TokenResponse(access_token=access_token, refresh_token=refresh_token, params=results)

    async def fetch_userinfo(self, url: str, access_token: str) -> Profile:
        """Load the userinfo endpoint and parse it into a profile."""
        try:
            body, _ = await self.client.get(url, access_token)
        except (OAuth2ResponseError, httpx.HTTPError) as e:
            self.logger.error("Userinfo request failed", error=str(e))
            raise InternalOAuthError("Failed to fetch user profile", e) from e

        try:
            data = json.loads(body)
        except ValueError as e:
            raise OIDCProtocolError("Failed to parse user profile") from e
        if not isinstance(data, dict):
            raise OIDCProtocolError("Failed to parse user profile")

        profile = Profile.parse(data)
        profile.raw = body
        profile.json_data = data
        return profile

    def _record(self, status: str) -> None:
        if self.metrics is not None:
            self.metrics.record_token_exchange(status)


def _parse_token_error(error: OAuth2ResponseError) -> Optional[TokenError]:
    if not error.status_code or not error.data:
        return None
    try:
        document = json.loads(error.data)
    except ValueError:
        return None
    if not isinstance(document, dict) or not document.get("error"):
        return None
    return TokenError(
        document.get("error_description"),
        document["error"],
        document.get("error_uri"),
        status=error.status_code,
    )
