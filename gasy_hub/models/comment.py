"""
Comment models for alert threads.
"""

from pydantic import Field
from datetime import datetime
from typing import Optional
from enum import Enum

from gasy_hub.models.base import ApiModel


class CommentType(str, Enum):
    """
    TEXT is a free remark. GREEN / RED are confirm / reject notes and
    must match a vote the user actually cast.
    """
    TEXT = "text"
    GREEN = "green"
    RED = "red"


class CommentCreate(ApiModel):
    """Model for creating a comment."""
    type: CommentType = CommentType.TEXT
    content: str = Field(..., max_length=1000)
    user_id: str


class CommentUser(ApiModel):
    id: str
    name: str


class CommentResponse(ApiModel):
    """Comment response model."""
    id: int
    alert_id: str
    user_id: str
    type: CommentType
    content: str
    created_at: datetime
    user: Optional[CommentUser] = None

    @classmethod
    def from_comment(cls, comment) -> "CommentResponse":
        user = None
        if comment.user is not None:
            user = CommentUser(id=comment.user.id, name=comment.user.name)
        return cls(
            id=comment.id,
            alert_id=comment.alert_id,
            user_id=comment.user_id,
            type=comment.type,
            content=comment.content,
            created_at=comment.created_at,
            user=user,
        )
