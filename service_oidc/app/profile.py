"""
Normalized identity profile and authentication context.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


def _text(value: Any) -> Optional[str]:
    """Claim value as a string; providers sometimes send numeric identifiers."""
    if value is None or value == "":
        return None
    return value if isinstance(value, str) else str(value)


class ProfileName(BaseModel):
    """Structured user name."""
    given_name: Optional[str] = None
    family_name: Optional[str] = None
    middle_name: Optional[str] = None


class ProfileEmail(BaseModel):
    """Email address entry."""
    value: str
    type: Optional[str] = None


class Profile(BaseModel):
    """User profile parsed from ID token claims or the userinfo endpoint.

    ``raw`` and ``json_data`` are only set on the userinfo profile and hold
    the response body as received and as parsed.
    """

    id: Optional[str] = None
    oid: Optional[str] = None
    display_name: Optional[str] = None
    username: Optional[str] = None
    name: Optional[ProfileName] = None
    emails: Optional[List[ProfileEmail]] = None

    raw: Optional[str] = Field(default=None, exclude=True)
    json_data: Optional[Dict[str, Any]] = Field(default=None, exclude=True)

    @classmethod
    def parse(cls, data: Dict[str, Any]) -> "Profile":
        profile = cls()
        # Before OpenID Connect Basic Client Profile draft 22 the "sub" claim
        # was named "user_id" and some providers still send it.
        profile.id = _text(data.get("sub") or data.get("user_id"))

        # Azure AD object id
        if data.get("oid"):
            profile.oid = _text(data["oid"])
        if data.get("name"):
            profile.display_name = _text(data["name"])
        if data.get("preferred_username"):
            profile.username = _text(data["preferred_username"])

        if data.get("family_name") or data.get("given_name") or data.get("middle_name"):
            profile.name = ProfileName(
                family_name=_text(data.get("family_name")),
                given_name=_text(data.get("given_name")),
                middle_name=_text(data.get("middle_name")),
            )
        if data.get("email"):
            profile.emails = [ProfileEmail(value=_text(data["email"]))]

        return profile

    @classmethod
    def merge(cls, id_profile: "Profile", ui_profile: Optional["Profile"] = None) -> "Profile":
        """Overlay userinfo fields onto the ID token profile."""
        merged = id_profile.model_dump(exclude_none=True)
        if ui_profile is not None:
            merged.update(ui_profile.model_dump(exclude_none=True))
        return cls.model_validate(merged)


class AuthContext(BaseModel):
    """How and when the end user authenticated."""

    model_config = ConfigDict(populate_by_name=True)

    timestamp: Optional[datetime] = None
    class_: Optional[str] = Field(default=None, alias="class")
    methods: Optional[List[str]] = None

    @classmethod
    def parse(cls, claims: Dict[str, Any]) -> "AuthContext":
        context = cls()
        if claims.get("auth_time"):
            context.timestamp = datetime.fromtimestamp(claims["auth_time"], tz=timezone.utc)
        if claims.get("acr"):
            context.class_ = _text(claims["acr"])
        if claims.get("amr"):
            context.methods = claims["amr"]
        return context
