"""
Dispatch of validated identities to application verify callables.

The application declares which ``VerifyShape`` its callable implements,
and whether the framework request is passed first. The verify callable
may be sync or async. It completes by returning ``user`` or
``(user, info)``. A falsy user rejects the login and raising an exception
is a hard error.
"""

import inspect
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple

from .profile import AuthContext, Profile


class VerifyShape(str, Enum):
    """Positional arguments a verify callable accepts."""

    PROFILE = "profile"
    CONTEXT = "context"
    ID_TOKEN = "id_token"
    TOKENS = "tokens"
    PARAMS = "params"
    SEPARATE_PROFILES = "separate_profiles"


SHAPE_ARGUMENTS: Dict[VerifyShape, Tuple[str, ...]] = {
    VerifyShape.PROFILE: ("issuer", "profile"),
    VerifyShape.CONTEXT: ("issuer", "profile", "context"),
    VerifyShape.ID_TOKEN: ("issuer", "profile", "context", "id_token"),
    VerifyShape.TOKENS: ("issuer", "profile", "context", "id_token", "access_token", "refresh_token"),
    VerifyShape.PARAMS: ("issuer", "profile", "context", "id_token", "access_token", "refresh_token",
                         "params"),
    VerifyShape.SEPARATE_PROFILES: ("issuer", "ui_profile", "id_profile", "context", "id_token",
                                    "access_token", "refresh_token", "params"),
}


@dataclass
class VerificationInput:
    """Everything a verify callable may ask for."""

    issuer: str
    profile: Profile
    id_profile: Profile
    context: AuthContext
    id_token: str
    ui_profile: Optional[Profile] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    params: Optional[Dict[str, Any]] = None
    request: Any = None


class VerificationDispatcher:
    """Calls the application's verify callable with the arguments of its shape."""

    def __init__(self, verify: Callable[..., Any], shape: VerifyShape = VerifyShape.PROFILE,
                 pass_req_to_callback: bool = False):
        if not callable(verify):
            raise TypeError("OpenIDConnectStrategy requires a verify function")
        self.verify = verify
        self.shape = VerifyShape(shape)
        self.pass_req_to_callback = pass_req_to_callback

    def arguments(self, data: VerificationInput) -> Tuple[Any, ...]:
        args = tuple(getattr(data, name) for name in SHAPE_ARGUMENTS[self.shape])
        if self.pass_req_to_callback:
            return (data.request,) + args
        return args

    async def dispatch(self, data: VerificationInput) -> Tuple[Any, Optional[Dict[str, Any]]]:
        """Invoke the verify callable and return ``(user, info)``."""
        result = self.verify(*self.arguments(data))
        if inspect.isawaitable(result):
            result = await result

        if isinstance(result, tuple):
            if len(result) != 2:
                raise TypeError("verify must return user or a (user, info) tuple")
            return result[0], result[1]
        return result, None

    async def should_load_user_profile(self, skip_user_profile: Any, request: Any,
                                       claims: Dict[str, Any]) -> bool:
        """Decide whether the userinfo endpoint must be queried.

        ``skip_user_profile`` is a bool, a predicate ``(request, claims)`` or
        an async predicate. Left unset, userinfo is only loaded for the
        shape that receives a separate userinfo profile.
        """
        if skip_user_profile is None:
            return self.shape is VerifyShape.SEPARATE_PROFILES

        if callable(skip_user_profile):
            skip = skip_user_profile(request, claims)
            if inspect.isawaitable(skip):
                skip = await skip
        else:
            skip = skip_user_profile
        return not skip
