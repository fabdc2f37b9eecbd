"""
OpenID Connect authentication strategy.

``authenticate`` is called twice per login. On the first call it redirects
the user agent to the OP. On the second it handles the callback, exchanges
the code, checks the ID token and hands the identity to the application.
Soft outcomes are returned, hard errors are raised.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Union

from shared.errors import ConfigurationError
from shared.logging import get_logger, set_user_context
from shared.metrics import MetricsCollector

from .authorization import AuthorizationRequestBuilder
from .config import STRATEGY_NAME, AuthenticateOptions, StrategyConfig
from .errors import AuthorizationError, IDTokenRejected
from .oauth2 import OAuth2Client, TokenExchange
from .profile import AuthContext, Profile
from .request import RequestContext
from .state import SessionStateStore, StateStore
from .utils import resolve_callback_url
from .validation import IDTokenValidator
from .verification import VerificationDispatcher, VerificationInput, VerifyShape


@dataclass
class Redirect:
    """Send the user agent to ``location``."""
    location: str


@dataclass
class Success:
    """The application accepted the user."""
    user: Any
    info: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Failure:
    """Authentication was refused; ``status`` is an HTTP-style code when known."""
    info: Optional[Dict[str, Any]] = None
    status: Optional[int] = None

    @property
    def message(self) -> Optional[str]:
        return (self.info or {}).get("message")


AuthOutcome = Union[Redirect, Success, Failure]


class OpenIDConnectStrategy:
    """Relying-party side of the OpenID Connect authorization code flow."""

    name = STRATEGY_NAME

    def __init__(
        self,
        config: StrategyConfig,
        verify: Callable[..., Any],
        shape: VerifyShape = VerifyShape.PROFILE,
        store: Optional[StateStore] = None,
        oauth2: Optional[OAuth2Client] = None,
        metrics: Optional[MetricsCollector] = None,
        clock: Callable[[], float] = time.time,
    ):
        if verify is None:
            raise TypeError("OpenIDConnectStrategy requires a verify function")
        config.check_required()

        self.config = config
        self.metrics = metrics
        self.logger = get_logger("oidc.strategy")

        self.store = store or config.store or SessionStateStore(config.resolved_session_key())
        # Subclasses may use the OAuth 2.0 client for further protected resource requests
        self.oauth2 = oauth2 or OAuth2Client(
            config.client_id,
            config.client_secret,
            config.token_url,
            custom_headers=config.custom_headers,
            transport=config.agent,
        )
        self.token_exchange = TokenExchange(self.oauth2, metrics)
        self.validator = IDTokenValidator(config.issuer, config.client_id, clock)
        self.dispatcher = VerificationDispatcher(verify, shape, config.pass_req_to_callback)
        self.builder = AuthorizationRequestBuilder(config, self.store)

    def authorization_params(self, options: AuthenticateOptions) -> Dict[str, Any]:
        """Extra provider-specific ``/authorize`` parameters. Override in subclasses."""
        return {}

    async def authenticate(self, request: RequestContext,
                           options: Optional[AuthenticateOptions] = None) -> AuthOutcome:
        try:
            outcome = await self._authenticate(request, options or AuthenticateOptions())
        except Exception as e:
            self._record("error")
            self.logger.error("Authentication error", error=str(e), error_type=type(e).__name__)
            raise

        self._record(type(outcome).__name__.lower())
        return outcome

    async def _authenticate(self, request: RequestContext, options: AuthenticateOptions) -> AuthOutcome:
        query = request.query

        error = query.get("error")
        if error:
            if error == "access_denied":
                self.logger.info("Authorization denied by user")
                return Failure({"message": query.get("error_description")})
            raise AuthorizationError(query.get("error_description"), error, query.get("error_uri"))

        callback_url = resolve_callback_url(
            options.callback_url or self.config.callback_url,
            request.url,
            request.headers,
            self.config.proxy,
        )

        if query.get("code"):
            return await self._handle_callback(request, callback_url)

        location = await self.builder.build(request, options, callback_url, self.authorization_params(options))
        return Redirect(location)

    async def _handle_callback(self, request: RequestContext, callback_url: Optional[str]) -> AuthOutcome:
        context, app_state = await self.store.verify(request, request.query.get("state"))
        if not context:
            return Failure(app_state, 403)

        tokens = await self.token_exchange.exchange(
            request.query["code"],
            redirect_uri=callback_url,
            code_verifier=context.verifier,
            pkce=bool(self.config.pkce),
        )

        try:
            claims = self.validator.validate(tokens.id_token, context)
        except IDTokenRejected as e:
            return Failure({"message": e.message}, e.status)

        framework_request = request.raw if request.raw is not None else request

        ui_profile = None
        if await self.dispatcher.should_load_user_profile(self.config.skip_user_profile,
                                                          framework_request, claims):
            if not self.config.userinfo_url:
                raise ConfigurationError("Loading the user profile requires a userinfo_url option")
            ui_profile = await self.token_exchange.fetch_userinfo(self.config.userinfo_url, tokens.access_token)

        id_profile = Profile.parse(claims)
        user, info = await self.dispatcher.dispatch(VerificationInput(
            issuer=claims["iss"],
            profile=Profile.merge(id_profile, ui_profile),
            id_profile=id_profile,
            ui_profile=ui_profile,
            context=AuthContext.parse(claims),
            id_token=tokens.id_token,
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            params=tokens.params,
            request=framework_request,
        ))

        if not user:
            self.logger.info("User rejected by verify callback", sub=claims["sub"])
            return Failure(info)

        info = dict(info or {})
        if app_state:
            info["state"] = app_state

        set_user_context(str(claims["sub"]))
        self.logger.info("User authenticated", sub=claims["sub"])
        return Success(user, info)

    def _record(self, outcome: str) -> None:
        if self.metrics is not None:
            self.metrics.record_authentication(outcome)
