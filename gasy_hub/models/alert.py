"""
Pydantic models for SOS alerts.
These models handle validation for alert requests and shape the responses.
"""

from pydantic import Field
from datetime import datetime
from typing import Optional, List
from enum import Enum

from gasy_hub.models.base import ApiModel
from gasy_hub.services.status_workflow import AlertStatus


class Urgency(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class AuthorSummary(ApiModel):
    """Public view of an alert's author."""
    id: str
    name: str
    has_cin: bool = Field(default=False, alias="hasCIN")


class AlertResponse(ApiModel):
    """
    Model for alert responses (what API and WebSocket push return).
    """
    id: str
    reason: str
    description: str
    location: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    status: AlertStatus
    urgency: Urgency
    author_id: str
    author: Optional[AuthorSummary] = None
    confirmed_count: int = 0
    rejected_count: int = 0
    view_count: int = 0
    media: List[str] = Field(default_factory=list)
    validated_by: List[str] = Field(default_factory=list, description="IDs of users who already voted")
    resolved_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_alert(cls, alert) -> "AlertResponse":
        """Build the response from an ORM Alert (author and ledger loaded lazily)."""
        author = None
        if alert.author is not None:
            author = AuthorSummary(id=alert.author.id, name=alert.author.name, has_cin=alert.author.has_cin)

        return cls(
            id=alert.id,
            reason=alert.reason,
            description=alert.description,
            location=alert.location,
            latitude=alert.latitude,
            longitude=alert.longitude,
            status=alert.status,
            urgency=alert.urgency,
            author_id=alert.author_id,
            author=author,
            confirmed_count=alert.confirmed_count,
            rejected_count=alert.rejected_count,
            view_count=alert.view_count,
            media=list(alert.media or []),
            validated_by=[v.user_id for v in alert.validations],
            resolved_at=alert.resolved_at,
            created_at=alert.created_at,
            updated_at=alert.updated_at,
        )


class AlertPage(ApiModel):
    """Paginated alert listing, newest first."""
    alerts: List[AlertResponse]
    page: int
    limit: int
    total: int
    has_more: bool


class ValidateRequest(ApiModel):
    """Vote to confirm (true) or reject (false) an alert."""
    is_confirmed: bool
    user_id: str
    comment: Optional[str] = Field(None, max_length=1000, description="Optional note stored as a green/red comment")


class StatusUpdateRequest(ApiModel):
    """
    Status change requested by a user.
    "resolved" is an author action; "confirmed"/"fake" require an admin.
    """
    status: AlertStatus
    author_id: str = Field(..., description="ID of the user making the request")


class AdminStatusRequest(ApiModel):
    """Administrative override of an alert's status."""
    status: AlertStatus
    note: Optional[str] = Field(None, max_length=500, description="Optional note stored in the audit trail")


class AlertUpdateRequest(ApiModel):
    """Editable alert fields (author or admin)."""
    updater_id: str
    reason: Optional[str] = None
    description: Optional[str] = Field(None, max_length=1000)
    location: Optional[str] = None
    urgency: Optional[Urgency] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


class AlertDeleteRequest(ApiModel):
    author_id: str


class VoterEntry(ApiModel):
    user_id: str
    is_confirmed: bool
    validated_at: datetime


class VotersResponse(ApiModel):
    alert_id: str
    voters: List[VoterEntry] = Field(default_factory=list)


class HasVotedResponse(ApiModel):
    alert_id: str
    user_id: str
    has_voted: bool


class StatusChangeResponse(ApiModel):
    """Audit trail entry."""
    id: int
    alert_id: str
    actor_id: str
    from_status: Optional[str] = None
    to_status: str
    note: Optional[str] = None
    created_at: datetime
