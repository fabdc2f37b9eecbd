"""
OpenID Connect relying party package.

- app.strategy: The authentication state machine (redirect and callback legs).
- app.state: Request state stores binding handle, nonce, max-age and PKCE.
- app.authorization: Authorization request construction.
- app.oauth2: Token endpoint transport and code exchange.
- app.validation: ID token decoding and claim checks.
- app.profile: Profile and authentication context normalization.
- app.verification: Dispatch to application verify callables.
- app.discovery: Provider metadata discovery.
- app.main: FastAPI service wiring login/callback routes.

Module import must not perform network calls. All IO happens in route
handlers or inside ``authenticate``.
"""

from .config import AuthenticateOptions, StrategyConfig
from .profile import AuthContext, Profile
from .request import RequestContext
from .strategy import Failure, OpenIDConnectStrategy, Redirect, Success
from .verification import VerifyShape

__all__ = [
    "AuthContext",
    "AuthenticateOptions",
    "Failure",
    "OpenIDConnectStrategy",
    "Profile",
    "Redirect",
    "RequestContext",
    "StrategyConfig",
    "Success",
    "VerifyShape",
]
