"""
OAuth 2.0 / OpenID Connect error taxonomy.

Hard errors are raised out of ``authenticate``. ``IDTokenRejected`` is the
one soft case: the strategy converts it into a ``Failure`` outcome.
"""

from typing import Any, Dict, Optional

from shared.errors import AuthenticationError, RelyingPartyException, ValidationError

_AUTHORIZATION_STATUS = {
    "access_denied": 403,
    "server_error": 502,
    "temporarily_unavailable": 503,
}


class AuthorizationError(RelyingPartyException):
    """Error reported by the OP on the authorization callback."""

    def __init__(self, message: Optional[str] = None, code: Optional[str] = None,
                 uri: Optional[str] = None, status: Optional[int] = None):
        self.oauth_code = code or "server_error"
        self.uri = uri
        if status is None:
            status = _AUTHORIZATION_STATUS.get(self.oauth_code, 500)
        self.status = status
        super().__init__(
            "AUTHORIZATION_ERROR",
            message or self.oauth_code,
            {"error": self.oauth_code, "error_uri": uri}
        )


class TokenError(RelyingPartyException):
    """Error document returned by the OP token endpoint."""

    def __init__(self, message: Optional[str] = None, code: Optional[str] = None,
                 uri: Optional[str] = None, status: int = 500):
        self.oauth_code = code or "invalid_request"
        self.uri = uri
        self.status = status
        super().__init__(
            "TOKEN_ERROR",
            message or self.oauth_code,
            {"error": self.oauth_code, "error_uri": uri}
        )


class InternalOAuthError(RelyingPartyException):
    """Opaque transport failure talking to the OP."""

    def __init__(self, message: str, oauth_error: Any = None):
        self.oauth_error = oauth_error
        details: Dict[str, Any] = {}
        if oauth_error is not None:
            details["cause"] = str(oauth_error)
            status_code = getattr(oauth_error, "status_code", None)
            if status_code is not None:
                details["status_code"] = status_code
        super().__init__("INTERNAL_OAUTH_ERROR", message, details)


class OIDCProtocolError(RelyingPartyException):
    """OP response that breaks the protocol (missing id_token, bad userinfo)."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("PROTOCOL_ERROR", message, details)


class PKCEError(RelyingPartyException):
    """PKCE is enabled but no verifier was bound to the request."""

    def __init__(self, message: str = "PKCE flag is defined but verifier string is not found in session ctx"):
        super().__init__("PKCE_ERROR", message)


class IDTokenError(ValidationError):
    """Malformed ID token; not attributable to the user."""


class IDTokenParseError(IDTokenError):
    """ID token could not be decoded."""


class MissingClaimError(IDTokenError):
    """A required claim is absent from the ID token."""

    def __init__(self, claim: str, description: str):
        self.claim = claim
        super().__init__(f"ID token missing {description} claim", {"claim": claim})


class ClaimTypeError(IDTokenError):
    """A claim has the wrong JSON type."""


class IDTokenRejected(AuthenticationError):
    """ID token failed a trust check. Surfaced as a soft failure."""

    def __init__(self, message: str, status: int = 403):
        super().__init__(message, status=status)
