"""
ID token decoding and claim checks.
"""

import time
from typing import Any, Callable, Dict, Optional

import jwt

from shared.logging import get_logger

from ..errors import ClaimTypeError, IDTokenParseError, IDTokenRejected, MissingClaimError
from ..state import StateContext

# Checked in this order; each absent claim is its own error
REQUIRED_CLAIMS = (
    ("iss", "issuer"),
    ("sub", "subject"),
    ("aud", "audience"),
    ("exp", "expiration time"),
    ("iat", "issued at"),
)

# Values that count as an absent claim; empty arrays and objects are present
BLANK_VALUES = (None, "", 0)


def decode_id_token(id_token: str) -> Dict[str, Any]:
    """Return the claims of ``id_token`` without verifying its signature."""
    try:
        return jwt.decode(id_token, options={"verify_signature": False})
    except jwt.InvalidTokenError as e:
        raise IDTokenParseError(f"Failed to decode ID token: {e}", {"error": str(e)}) from e


class IDTokenValidator:
    """Runs the OpenID Connect ID token checks for one relying party.

    Structural problems (undecodable token, missing claims, wrong claim
    types) raise ``IDTokenError`` subclasses. Trust check violations raise
    ``IDTokenRejected`` with status 403.
    """

    def __init__(self, issuer: str, client_id: str, clock: Callable[[], float] = time.time):
        self.issuer = issuer
        self.client_id = client_id
        self.clock = clock
        self.logger = get_logger("oidc.validation")

    def validate(self, id_token: str, context: Optional[StateContext] = None) -> Dict[str, Any]:
        """Decode ``id_token`` and check it against ``context``. Returns the claims."""
        claims = decode_id_token(id_token)
        self.check_claims(claims, context or StateContext())
        return claims

    def check_claims(self, claims: Dict[str, Any], context: StateContext) -> None:
        for claim, description in REQUIRED_CLAIMS:
            if claims.get(claim) in BLANK_VALUES:
                raise MissingClaimError(claim, description)

        aud = claims["aud"]
        if not (isinstance(aud, str) or
                (isinstance(aud, list) and all(isinstance(a, str) for a in aud))):
            raise ClaimTypeError("ID token audience claim not an array or string value", {"claim": "aud"})

        if claims["iss"] != self.issuer:
            self._reject("ID token not issued by expected OpenID provider.", iss=claims["iss"])

        if isinstance(aud, str):
            if aud != self.client_id:
                self._reject("ID token not intended for this relying party.")
        else:
            if self.client_id not in aud:
                self._reject("ID token not intended for this relying party.")
            if len(aud) > 1 and not claims.get("azp"):
                self._reject("ID token missing authorized party claim.")

        if claims.get("azp") and claims["azp"] != self.client_id:
            self._reject("ID token not issued to this relying party.")

        exp = claims["exp"]
        if isinstance(exp, bool) or not isinstance(exp, (int, float)):
            raise ClaimTypeError("ID token expiration time claim not a number", {"claim": "exp"})
        # No allowance for clock skew
        if exp <= self.clock():
            self._reject("ID token has expired.")

        if context.max_age:
            auth_time = claims.get("auth_time")
            issued_ms = (context.issued.timestamp() if context.issued else self.clock()) * 1000
            if not auth_time or issued_ms - context.max_age * 1000 > auth_time * 1000:
                self._reject("Too much time has elapsed since last authentication.")

        if context.nonce and claims.get("nonce") != context.nonce:
            self._reject("ID token contains invalid nonce.")

    def _reject(self, message: str, **fields: Any) -> None:
        self.logger.warning("ID token rejected", reason=message, **fields)
        raise IDTokenRejected(message)
