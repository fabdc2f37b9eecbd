"""
Mock OpenID Provider serving discovery, authorize, token and userinfo endpoints.
"""

import hashlib
import secrets
import time
from base64 import urlsafe_b64encode
from typing import Dict, Any, Optional
from urllib.parse import parse_qsl, urlencode

import jwt
from fastapi import FastAPI, HTTPException, Request, Depends
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from shared.logging import get_logger


def _token_error(error: str, description: str, status_code: int = 400) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "error_description": description}
    )


class MockOpenIDProvider:
    """Mock OpenID Provider implementation.

    ``/authorize`` approves every request for ``default_user`` without
    interaction. Pending codes are kept in memory and are single-use.
    ``id_token_overrides`` is merged into every issued ID token so tests
    can produce tokens that fail validation.
    """

    def __init__(self, issuer: str = "https://op.example", client_id: str = "abc",
                 client_secret: str = "secret", default_user: str = "user1"):
        self.logger = get_logger("mock.provider")
        self.app = FastAPI(title="Mock OpenID Provider", version="1.0.0")

        self.issuer = issuer
        self.client_id = client_id
        self.client_secret = client_secret
        self.default_user = default_user
        self.signing_key = "mock-provider-hs256-signing-key-0123456789"
        self.id_token_overrides: Dict[str, Any] = {}

        self.users = {
            "user1": {
                "sub": "user1",
                "name": "John Doe",
                "given_name": "John",
                "family_name": "Doe",
                "preferred_username": "john.doe",
                "email": "john.doe@example.com",
            },
            "user2": {
                "sub": "user2",
                "name": "Jane Smith",
                "given_name": "Jane",
                "family_name": "Smith",
                "preferred_username": "jane.smith",
                "email": "jane.smith@example.com",
            },
        }

        self.codes: Dict[str, Dict[str, Any]] = {}
        self.access_tokens: Dict[str, str] = {}
        self.token_requests: list = []

        self._setup_routes()

    def _setup_routes(self):
        """Set up mock provider routes."""

        @self.app.get("/.well-known/openid-configuration")
        async def openid_configuration():
            """OpenID Connect discovery document."""
            return {
                "issuer": self.issuer,
                "authorization_endpoint": f"{self.issuer}/authorize",
                "token_endpoint": f"{self.issuer}/token",
                "userinfo_endpoint": f"{self.issuer}/userinfo",
                "response_types_supported": ["code"],
                "subject_types_supported": ["public"],
                "id_token_signing_alg_values_supported": ["HS256"],
                "code_challenge_methods_supported": ["S256", "plain"],
                "scopes_supported": ["openid", "profile", "email"]
            }

        @self.app.get("/authorize")
        async def authorize(request: Request):
            """Approve the request and redirect back with a code."""
            params = dict(request.query_params)
            redirect_uri = params.get("redirect_uri")
            if params.get("client_id") != self.client_id or not redirect_uri:
                raise HTTPException(status_code=400, detail="Invalid client")

            code = secrets.token_urlsafe(16)
            self.codes[code] = {
                "sub": params.get("login_hint") if params.get("login_hint") in self.users else self.default_user,
                "redirect_uri": redirect_uri,
                "nonce": params.get("nonce"),
                "code_challenge": params.get("code_challenge"),
                "scope": params.get("scope", ""),
                "auth_time": int(time.time()),
            }

            query = {"code": code}
            if "state" in params:
                query["state"] = params["state"]
            return RedirectResponse(f"{redirect_uri}?{urlencode(query)}", status_code=302)

        @self.app.post("/token")
        async def token_endpoint(request: Request):
            """Token endpoint for the authorization code grant."""
            form = dict(parse_qsl((await request.body()).decode()))
            self.token_requests.append(form)

            if form.get("client_id") != self.client_id or form.get("client_secret") != self.client_secret:
                return _token_error("invalid_client", "Client authentication failed", 401)
            if form.get("grant_type") != "authorization_code":
                return _token_error("unsupported_grant_type", "Only authorization_code is supported")

            grant = self.codes.pop(form.get("code", ""), None)
            if grant is None:
                return _token_error("invalid_grant", "Unknown or used authorization code")
            if grant["redirect_uri"] != form.get("redirect_uri"):
                return _token_error("invalid_grant", "redirect_uri mismatch")
            if grant["code_challenge"] and not self._pkce_matches(grant["code_challenge"], form.get("code_verifier")):
                return _token_error("invalid_grant", "PKCE verification failed")

            return self._generate_tokens(grant)

        @self.app.get("/userinfo")
        async def userinfo_endpoint(credentials: HTTPAuthorizationCredentials = Depends(HTTPBearer())):
            """User info endpoint."""
            user_id = self.access_tokens.get(credentials.credentials)
            if user_id is None:
                raise HTTPException(status_code=401, detail="Invalid token")
            return self.users[user_id]

    @staticmethod
    def _pkce_matches(challenge: str, verifier: Optional[str]) -> bool:
        if not verifier:
            return False
        digest = hashlib.sha256(verifier.encode("ascii")).digest()
        s256 = urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
        # Clients in plain mode still declare S256, so accept either form
        return challenge in (s256, verifier)

    def _generate_tokens(self, grant: Dict[str, Any]) -> Dict[str, Any]:
        """Issue access, refresh and ID tokens for a redeemed code."""
        user = self.users[grant["sub"]]
        now = int(time.time())

        id_token_payload = {
            "iss": self.issuer,
            "sub": user["sub"],
            "aud": self.client_id,
            "iat": now,
            "exp": now + 3600,
            "auth_time": grant["auth_time"],
            "name": user["name"],
            "preferred_username": user["preferred_username"],
            "email": user["email"],
        }
        if grant["nonce"]:
            id_token_payload["nonce"] = grant["nonce"]
        id_token_payload.update(self.id_token_overrides)

        access_token = secrets.token_urlsafe(24)
        self.access_tokens[access_token] = user["sub"]

        self.logger.info("Issued tokens", sub=user["sub"])
        return {
            "access_token": access_token,
            "token_type": "Bearer",
            "expires_in": 3600,
            "refresh_token": secrets.token_urlsafe(24),
            "id_token": jwt.encode(id_token_payload, self.signing_key, algorithm="HS256"),
            "scope": grant["scope"],
        }


def create_app():
    """Create mock provider application."""
    provider = MockOpenIDProvider()
    return provider.app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(create_app(), host="0.0.0.0", port=8080)
