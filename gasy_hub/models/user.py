"""
User models for registration, profile and admin management.
"""

from pydantic import Field
from datetime import datetime
from typing import Optional

from gasy_hub.models.base import ApiModel


class UserCreate(ApiModel):
    """Model for creating a new user."""
    phone: str = Field(..., max_length=30, description="Phone number (primary login identity)")
    name: Optional[str] = Field(None, max_length=120, description="Display name (generated if omitted)")
    neighborhood: Optional[str] = Field(None, max_length=120)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


class UserUpdate(ApiModel):
    """Profile fields a user may change on their own account."""
    name: Optional[str] = Field(None, max_length=120)
    neighborhood: Optional[str] = Field(None, max_length=120)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


class AdminUserUpdate(ApiModel):
    """Trust flags only an admin may change."""
    is_admin: Optional[bool] = None
    has_cin: Optional[bool] = Field(None, alias="hasCIN")


class UserResponse(ApiModel):
    """Model for user responses."""
    id: str
    name: str
    phone: str
    neighborhood: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    has_cin: bool = Field(default=False, alias="hasCIN")
    is_admin: bool = False
    alerts_count: int = 0
    validations_count: int = 0
    created_at: datetime


class UserStats(ApiModel):
    alerts_count: int = 0
    validations_count: int = 0
    confirmed_alerts_count: int = 0
    fake_alerts_count: int = 0


class SystemStats(ApiModel):
    users_count: int = 0
    alerts_count: int = 0
    confirmed_alerts_count: int = 0
    pending_alerts_count: int = 0
    resolved_alerts_count: int = 0
    fake_alerts_count: int = 0
    validations_count: int = 0
