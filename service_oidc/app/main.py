"""
OIDC relying party service.
"""

from typing import Any, Callable, Dict, Optional

import httpx
from fastapi import Request
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.middleware.sessions import SessionMiddleware

from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.logging import get_logger

from .config import AuthenticateOptions, StrategyConfig
from .discovery import discover
from .profile import Profile
from .request import RequestContext
from .strategy import Failure, OpenIDConnectStrategy, Redirect
from .verification import VerifyShape

logger = get_logger("oidc.service")


def default_verify(issuer: str, profile: Profile) -> Dict[str, Any]:
    """Accept every validated identity and keep a JSON-safe summary."""
    return {
        "issuer": issuer,
        "id": profile.id,
        "username": profile.username,
        "display_name": profile.display_name,
        "email": profile.emails[0].value if profile.emails else None,
    }


class OIDCService(BaseService):
    """FastAPI service exposing the login and callback legs."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        verify: Callable[..., Any] = default_verify,
        shape: VerifyShape = VerifyShape.PROFILE,
        strategy_options: Optional[Dict[str, Any]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.verify = verify
        self.shape = shape
        self.strategy_options = dict(strategy_options or {})
        self.transport = transport
        self._strategy: Optional[OpenIDConnectStrategy] = None

        super().__init__("oidc", 8020, config)

        self.app.add_middleware(
            SessionMiddleware,
            secret_key=self.config.session_secret,
            session_cookie=self.config.session_cookie,
            max_age=self.config.session_max_age,
            https_only=self.config.env != "local",
        )

        self._setup_oidc_routes()

    async def get_strategy(self) -> OpenIDConnectStrategy:
        """Build the strategy on first use, discovering endpoints if asked to."""
        if self._strategy is None:
            options = dict(self.strategy_options)
            if self.transport is not None:
                options.setdefault("agent", self.transport)
            if self.config.discover and self.config.issuer and not self.config.authorization_url:
                metadata = await discover(self.config.issuer, transport=self.transport)
                for key, value in metadata.strategy_options().items():
                    options.setdefault(key, value)

            strategy_config = StrategyConfig.from_settings(self.config, **options)
            self._strategy = OpenIDConnectStrategy(
                strategy_config,
                self.verify,
                self.shape,
                metrics=self.metrics,
            )
        return self._strategy

    def _setup_oidc_routes(self):
        """Set up relying party routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "oidc",
                "message": "OpenID Connect Relying Party",
                "version": "1.0.0"
            }

        @self.app.get("/login")
        async def login(
            request: Request,
            prompt: Optional[str] = None,
            login_hint: Optional[str] = None,
            display: Optional[str] = None,
            scope: Optional[str] = None,
            return_to: Optional[str] = None,
        ):
            """Start the authorization code flow."""
            strategy = await self.get_strategy()
            options = AuthenticateOptions(
                prompt=prompt,
                login_hint=login_hint,
                display=display,
                scope=scope,
                state={"return_to": return_to} if return_to else None,
            )
            outcome = await strategy.authenticate(RequestContext.from_starlette(request), options)
            return self._respond(request, outcome)

        @self.app.get("/callback")
        async def callback(request: Request):
            """Complete the authorization code flow."""
            strategy = await self.get_strategy()
            outcome = await strategy.authenticate(RequestContext.from_starlette(request))
            return self._respond(request, outcome)

        @self.app.get("/me")
        async def me(request: Request):
            """Return the user bound to the current session."""
            user = request.session.get("user")
            if not user:
                return JSONResponse(status_code=401, content={"authenticated": False})
            return {"authenticated": True, "user": user}

    def _respond(self, request: Request, outcome):
        if isinstance(outcome, Redirect):
            return RedirectResponse(outcome.location, status_code=302)

        if isinstance(outcome, Failure):
            logger.info("Login failed", status=outcome.status, reason=outcome.message)
            return JSONResponse(
                status_code=outcome.status or 401,
                content={"authenticated": False, "message": outcome.message}
            )

        request.session["user"] = outcome.user
        return {
            "authenticated": True,
            "user": outcome.user,
            "state": outcome.info.get("state"),
        }

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check relying party configuration."""
        return {
            "openid_provider": "configured" if self.config.issuer and self.config.client_id else "unconfigured"
        }


def create_app(**kwargs):
    """Create FastAPI application."""
    service = OIDCService(**kwargs)
    return service.app


if __name__ == "__main__":
    service = OIDCService()
    service.run()
