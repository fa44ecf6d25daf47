"""
User directory and statistics routes.
"""

from typing import Optional
import logging

from fastapi import APIRouter, Depends, Header, status
from sqlalchemy.orm import Session

from gasy_hub.db.database import get_db
from gasy_hub.models.user import SystemStats, UserCreate, UserResponse, UserStats, UserUpdate
from gasy_hub.services.user_service import get_user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])
stats_router = APIRouter(prefix="/api/stats", tags=["Stats"])


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(request: UserCreate, db: Session = Depends(get_db)):
    """
    Register a user by phone number.
    """
    user = get_user_service(db).create_user(
        phone=request.phone,
        name=request.name,
        neighborhood=request.neighborhood,
        latitude=request.latitude,
        longitude=request.longitude,
    )
    return UserResponse.model_validate(user)


@router.get("/{user_id}", response_model=UserResponse)
def get_user(user_id: str, db: Session = Depends(get_db)):
    user = get_user_service(db).require_user(user_id)
    return UserResponse.model_validate(user)


@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: str,
    request: UserUpdate,
    requester_id: Optional[str] = Header(None, alias="X-User-ID"),
    db: Session = Depends(get_db),
):
    """
    Update your own profile (X-User-ID must match the user).
    """
    user = get_user_service(db).update_user(user_id, requester_id, request.model_dump(exclude_none=True))
    return UserResponse.model_validate(user)


@stats_router.get("/user/{user_id}", response_model=UserStats)
def get_user_stats(user_id: str, db: Session = Depends(get_db)):
    return UserStats(**get_user_service(db).get_user_stats(user_id))


@stats_router.get("/system", response_model=SystemStats)
def get_system_stats(db: Session = Depends(get_db)):
    """
    Global counters for the dashboard.
    """
    return SystemStats(**get_user_service(db).get_system_stats())
