"""
Session-backed state store.

Generates a random handle and keeps the pending request state in the
session under a per-issuer key, where it is checked when the OP redirects
the user agent back to the application.
"""

from typing import Any, Optional, Tuple, Union

from shared.errors import SessionUnavailableError
from shared.logging import get_logger

from ..request import RequestContext
from ..utils import HANDLE_LENGTH, uid
from .base import PendingRequestState, StateContext, StateStore

UNABLE_TO_VERIFY = "Unable to verify authorization request state."
INVALID_STATE = "Invalid authorization request state."


class SessionStateStore(StateStore):
    """Keeps pending request state in ``session[key]["state"]``.

    Other entries under ``session[key]`` belong to the application and are
    left alone.
    """

    def __init__(self, key: str):
        if not key:
            raise TypeError("Session-based state store requires a session key")
        self.key = key
        self.logger = get_logger("oidc.state")

    async def store(self, request: RequestContext, context: StateContext, app_state: Any = None) -> str:
        session = self._session(request)
        handle = uid(HANDLE_LENGTH)

        pending = PendingRequestState(
            handle=handle,
            max_age=context.max_age or None,
            nonce=context.nonce or None,
            issued=context.issued,
            verifier=context.verifier or None,
            state=app_state or None,
        )

        # Read, modify and write back the whole entry within this request
        entry = dict(session.get(self.key) or {})
        entry["state"] = pending.to_session()
        session[self.key] = entry

        self.logger.debug("Stored authorization request state", session_key=self.key)
        return handle

    async def verify(self, request: RequestContext,
                     handle: Optional[str]) -> Tuple[Union[StateContext, bool], Any]:
        session = self._session(request)

        entry = session.get(self.key)
        if not entry or not entry.get("state"):
            self.logger.info("No authorization request state in session", session_key=self.key)
            return False, {"message": UNABLE_TO_VERIFY}

        entry = dict(entry)
        stored = entry.pop("state")
        if entry:
            session[self.key] = entry
        else:
            del session[self.key]

        if not stored.get("handle") or stored["handle"] != handle:
            self.logger.warning("Authorization request state mismatch", session_key=self.key)
            return False, {"message": INVALID_STATE}

        pending = PendingRequestState.model_validate(stored)
        context = StateContext(
            max_age=pending.max_age,
            nonce=pending.nonce,
            issued=pending.issued,
        )
        if pending.verifier:
            context.verifier = pending.verifier

        return context, pending.state

    @staticmethod
    def _session(request: RequestContext):
        if request.session is None:
            raise SessionUnavailableError()
        return request.session
