"""
State store contract and the records it persists.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from ..request import RequestContext


@dataclass
class StateContext:
    """Values bound to a pending request, as recovered on callback."""

    max_age: Optional[int] = None
    nonce: Optional[str] = None
    issued: Optional[datetime] = None
    verifier: Optional[str] = None


class PendingRequestState(BaseModel):
    """Session representation of a pending authorization request."""

    model_config = ConfigDict(populate_by_name=True)

    handle: str
    max_age: Optional[int] = Field(default=None, alias="maxAge")
    nonce: Optional[str] = None
    issued: Optional[datetime] = None
    verifier: Optional[str] = None
    state: Optional[Any] = None

    def to_session(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class StateStore(ABC):
    """Two-operation contract for binding state to authorization requests.

    Implementations must make a handle usable once and must not let the
    user agent tamper with the bound values.
    """

    @abstractmethod
    async def store(self, request: RequestContext, context: StateContext, app_state: Any = None) -> str:
        """Persist ``context`` and return the handle to send as ``state``."""

    @abstractmethod
    async def verify(self, request: RequestContext,
                     handle: Optional[str]) -> Tuple[Union[StateContext, bool], Any]:
        """Consume the state bound to ``handle``.

        Returns ``(context, app_state)`` on success and ``(False, info)``
        when the handle cannot be verified.
        """
