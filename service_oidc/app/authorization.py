"""
Authorization request construction (the redirect leg).
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Union

from shared.errors import ConfigurationError, RelyingPartyException
from shared.logging import get_logger

from .config import AuthenticateOptions, StrategyConfig
from .request import RequestContext
from .state import StateContext, StateStore
from .utils import NONCE_LENGTH, generate_verifier, merge_query, s256_challenge, uid

PKCE_METHODS = ("S256", "plain")


def normalize_scope(scope: Optional[Union[str, List[str]]]) -> str:
    """Space-joined scope with ``openid`` first, never duplicated."""
    if not scope:
        return "openid"
    scopes = scope.split() if isinstance(scope, str) else list(scope)
    if "openid" not in scopes:
        scopes.insert(0, "openid")
    return " ".join(scopes)


class AuthorizationRequestBuilder:
    """Assembles ``/authorize`` parameters and binds their state."""

    def __init__(self, config: StrategyConfig, store: StateStore):
        self.config = config
        self.store = store
        self.logger = get_logger("oidc.authorization")

    def build_params(self, options: AuthenticateOptions, callback_url: Optional[str],
                     extra: Optional[Dict[str, Any]] = None) -> Tuple[Dict[str, Any], StateContext]:
        """Return the query parameters (without ``state``) and the context to bind."""
        config = self.config
        params: Dict[str, Any] = dict(extra or {})

        params["response_type"] = "code"
        if config.response_mode:
            params["response_mode"] = config.response_mode
        params["client_id"] = config.client_id
        if callback_url:
            params["redirect_uri"] = callback_url
        params["scope"] = normalize_scope(options.scope or config.scope)

        prompt = options.prompt or config.prompt
        if prompt:
            params["prompt"] = prompt
        display = options.display or config.display
        if display:
            params["display"] = display
        if config.ui_locales:
            params["ui_locales"] = config.ui_locales
        login_hint = options.login_hint or config.login_hint
        if login_hint:
            params["login_hint"] = login_hint
        if config.max_age:
            params["max_age"] = config.max_age
        if config.acr_values:
            params["acr_values"] = config.acr_values
        if config.id_token_hint:
            params["id_token_hint"] = config.id_token_hint
        if config.nonce:
            params["nonce"] = uid(NONCE_LENGTH)
        if config.claims:
            params["claims"] = json.dumps(config.claims)

        context = StateContext()
        if params.get("max_age"):
            context.max_age = params["max_age"]
            context.issued = datetime.now(timezone.utc)
        if params.get("nonce"):
            context.nonce = params["nonce"]

        if config.pkce:
            if config.pkce not in PKCE_METHODS:
                raise ConfigurationError(
                    f"Unsupported code verifier transformation method: {config.pkce}",
                    details={"pkce": config.pkce}
                )
            verifier = generate_verifier()
            params["code_challenge"] = s256_challenge(verifier) if config.pkce == "S256" else verifier
            # TODO: declare "plain" for plain mode; OPs deployed against this client currently receive "S256"
            params["code_challenge_method"] = "S256"
            context.verifier = verifier

        return params, context

    async def build(self, request: RequestContext, options: AuthenticateOptions,
                    callback_url: Optional[str], extra: Optional[Dict[str, Any]] = None) -> str:
        """Store the request state and return the redirect location."""
        params, context = self.build_params(options, callback_url, extra)

        handle = await self.store.store(request, context, options.state)
        if not handle:
            raise RelyingPartyException(
                "STATE_STORE_ERROR",
                "OpenID Connect state store did not yield state for authentication request"
            )
        params["state"] = handle

        self.logger.info(
            "Authorization request issued",
            scope=params["scope"],
            pkce=self.config.pkce,
            nonce=bool(self.config.nonce)
        )
        return merge_query(self.config.authorization_url, params)
