"""
Post model.

Only the fields the application lifecycle reads or writes are modelled; the
rest of a post document passes through untouched.
"""
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from app_lifecycle.models.application import ObjectIdStr

DEFAULT_POST_TITLE = "the tuition post"


class PostStatus(str, Enum):
    OPEN = "open"
    MATCHED = "matched"
    CLOSED = "closed"
    HOLD = "hold"
    ACTIVE = "active"


class Post(BaseModel):
    """
    Model representing an open teaching or freelance requirement.
    """
    id: ObjectIdStr | None = Field(None, alias="_id")
    post_id: str = Field("", description="Human-facing post code, e.g. P-010125-00")
    subject: str | None = None
    class_name: str | None = None
    status: PostStatus = PostStatus.OPEN
    applicants: list[str] = Field(default_factory=list, description="Candidate ids, in apply order")
    posted_by: str | None = Field(None, description="guardian or client")
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True
        populate_by_name = True
        use_enum_values = True
        extra = "ignore"

    @classmethod
    def from_document(cls, document: dict) -> "Post":
        data = dict(document)
        data["applicants"] = [str(applicant) for applicant in data.get("applicants") or []]
        return cls.model_validate(data)

    @property
    def display_title(self) -> str:
        if self.subject and self.class_name:
            return f"{self.subject} - {self.class_name}"
        return self.subject or self.class_name or DEFAULT_POST_TITLE

    @property
    def is_open(self) -> bool:
        return self.status == PostStatus.OPEN.value
