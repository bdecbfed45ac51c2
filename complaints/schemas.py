# complaints/schemas.py
"""
Request bodies for the complaint endpoints.

Multipart forms arrive as strings, so boolean fields rely on pydantic's
lax parsing ("true"/"false"/"1"/"0").
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from complaints.models import CENTER_TYPES, CONTACT_PREFERENCES

__all__ = [
    "ComplaintCreate",
    "StatusUpdate",
    "RatingIn",
    "ReactionIn",
    "TypingIn",
    "ValidationError",
    "first_error",
]


def first_error(exc: ValidationError) -> str:
    """Human readable message for the first failing field."""
    err = exc.errors()[0]
    loc = ".".join(str(p) for p in err.get("loc", ()) if p != "__root__")
    msg = err.get("msg", "Invalid input")
    if msg.startswith("Value error, "):
        msg = msg[len("Value error, "):]
    return f"{loc}: {msg}" if loc else msg


class _Body(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)


class ComplaintCreate(_Body):
    category: str = Field(min_length=1)
    description: str = Field(min_length=1)
    title: Optional[str] = None
    centerType: Optional[str] = None

    # canonical names win over the legacy ones
    contactPreference: Optional[str] = None
    contactMethod: Optional[str] = None
    allowWebReply: Optional[bool] = None
    replyInWeb: Optional[bool] = None

    @field_validator("centerType")
    @classmethod
    def _center(cls, v):
        if v and v not in CENTER_TYPES:
            raise ValueError(f"must be one of {', '.join(CENTER_TYPES)}")
        return v or None

    @field_validator("contactPreference", "contactMethod")
    @classmethod
    def _contact(cls, v):
        if v and v not in CONTACT_PREFERENCES:
            raise ValueError(f"must be one of {', '.join(CONTACT_PREFERENCES)}")
        return v or None

    @property
    def contact_preference(self) -> str:
        return self.contactPreference or self.contactMethod or "in_web"

    @property
    def allow_web_reply(self) -> bool:
        if self.allowWebReply is not None:
            return self.allowWebReply
        if self.replyInWeb is not None:
            return self.replyInWeb
        return True

    @property
    def resolved_title(self) -> str:
        return self.title or f"{self.category} Complaint"

    @property
    def center_type(self) -> str:
        return self.centerType or "online"


class StatusUpdate(_Body):
    status: str = ""


class RatingIn(_Body):
    score: int = Field(ge=1, le=5)
    comment: Optional[str] = None


class ReactionIn(_Body):
    emoji: str = Field(min_length=1, max_length=32)


class TypingIn(_Body):
    isTyping: bool = False
