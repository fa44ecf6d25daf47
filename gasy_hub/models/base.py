"""
Pydantic base models for request/response validation.

DESIGN PRINCIPLE:
- Models reflect data structure, not business logic
- JSON uses camelCase keys (the web client's convention); snake_case is
  accepted on input as well
"""

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from datetime import datetime, timezone
from typing import Optional


class ApiModel(BaseModel):
    """
    Base for every API model.
    Serializes with camelCase aliases and reads ORM objects directly.
    """

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class BaseResponse(ApiModel):
    """
    Base response model for acknowledgement-style responses.
    """
    success: bool = True
    message: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
