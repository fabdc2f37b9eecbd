"""
Framework-neutral view of an incoming HTTP request.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, MutableMapping, Optional

from starlette.requests import Request


@dataclass
class RequestContext:
    """What the strategy needs from the hosting framework.

    ``session`` is the per-user key-value store; ``None`` means the host has
    no session support. ``raw`` is the framework request, handed to verify
    callbacks when ``pass_req_to_callback`` is enabled.
    """

    url: str
    query: Dict[str, str] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    session: Optional[MutableMapping[str, Any]] = None
    raw: Any = None

    @classmethod
    def from_starlette(cls, request: Request) -> "RequestContext":
        # request.session asserts when SessionMiddleware is not installed
        session = request.session if "session" in request.scope else None
        return cls(
            url=str(request.url),
            query=dict(request.query_params),
            headers={k.lower(): v for k, v in request.headers.items()},
            session=session,
            raw=request,
        )
