"""
Request state stores.

A state store binds request-specific values (anti-CSRF handle, nonce,
max-age timestamp, PKCE verifier) to a pending authorization request and
hands them back exactly once when the OP redirects to the callback.
"""

from .base import PendingRequestState, StateContext, StateStore
from .session import SessionStateStore

__all__ = ["PendingRequestState", "StateContext", "StateStore", "SessionStateStore"]
