"""
Admin endpoints - moderation of users and alerts.

SCOPE OF ADMIN:
- Grant or revoke admin and CIN-verified flags
- Override an alert's status within the admin transitions
- Read the status history of an alert

Every endpoint requires X-User-ID to belong to an admin (403 otherwise).
Status overrides are written to the audit trail with the admin's ID.
"""

from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, Header, Query
from sqlalchemy.orm import Session

from gasy_hub.db.database import get_db
from gasy_hub.models.alert import AdminStatusRequest, AlertResponse, StatusChangeResponse
from gasy_hub.models.user import AdminUserUpdate, UserResponse
from gasy_hub.services.alert_service import get_alert_service
from gasy_hub.services.user_service import get_user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Admin"])


@router.get("/users", response_model=List[UserResponse])
def list_users(
    limit: int = Query(100, ge=1, le=500),
    admin_id: Optional[str] = Header(None, alias="X-User-ID"),
    db: Session = Depends(get_db),
):
    users = get_user_service(db).list_users(admin_id, limit=limit)
    return [UserResponse.model_validate(u) for u in users]


@router.patch("/users/{user_id}", response_model=UserResponse)
def update_user_flags(
    user_id: str,
    request: AdminUserUpdate,
    admin_id: Optional[str] = Header(None, alias="X-User-ID"),
    db: Session = Depends(get_db),
):
    """
    Set isAdmin / hasCIN on a user.
    """
    user = get_user_service(db).admin_update_user(user_id, admin_id, request.model_dump(exclude_none=True))
    return UserResponse.model_validate(user)


@router.patch("/alerts/{alert_id}/status", response_model=AlertResponse)
def override_alert_status(
    alert_id: str,
    request: AdminStatusRequest,
    admin_id: Optional[str] = Header(None, alias="X-User-ID"),
    db: Session = Depends(get_db),
):
    """
    Override an alert's status regardless of vote counts.

    Allowed transitions:
    - pending → confirmed | fake
    - confirmed → fake | resolved
    - fake → confirmed

    Setting the current status again is a no-op.
    """
    alert = get_alert_service(db).admin_override(alert_id, request.status, admin_id, note=request.note)
    return AlertResponse.from_alert(alert)


@router.get("/alerts/{alert_id}/history", response_model=List[StatusChangeResponse])
def get_alert_history(
    alert_id: str,
    admin_id: Optional[str] = Header(None, alias="X-User-ID"),
    db: Session = Depends(get_db),
):
    entries = get_alert_service(db).get_history(alert_id, admin_id)
    return [StatusChangeResponse.model_validate(e) for e in entries]
