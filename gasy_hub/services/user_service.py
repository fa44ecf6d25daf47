"""
User Service - Manage community members.
"""

from typing import Dict, List, Optional
import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from gasy_hub.core.errors import ForbiddenError, NotFoundError, ValidationError
from gasy_hub.db.database import commit_or_raise
from gasy_hub.db.models import Alert, AlertValidation, User
from gasy_hub.services.status_workflow import AlertStatus

logger = logging.getLogger(__name__)


def normalize_phone(phone_number: str) -> str:
    """Strip spaces, dashes, parentheses and the leading plus."""
    return (
        (phone_number or "")
        .replace(" ", "")
        .replace("-", "")
        .replace("(", "")
        .replace(")", "")
        .replace("+", "")
    )


class UserService:
    """
    Service for user management.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: str) -> Optional[User]:
        if not user_id:
            return None
        return self.db.get(User, user_id)

    def require_user(self, user_id: str) -> User:
        """
        Raises:
            NotFoundError: if the user does not exist
        """
        user = self.get_user(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return user

    def require_admin(self, user_id: Optional[str]) -> User:
        """
        Raises:
            ForbiddenError: if the caller is missing or not an admin
        """
        user = self.get_user(user_id) if user_id else None
        if user is None or not user.is_admin:
            raise ForbiddenError("Admin access required")
        return user

    def get_user_by_phone(self, phone_number: str) -> Optional[User]:
        normalized_phone = normalize_phone(phone_number)
        return self.db.scalars(select(User).where(User.phone == normalized_phone).limit(1)).first()

    def create_user(
        self,
        phone: str,
        name: Optional[str] = None,
        neighborhood: Optional[str] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        has_cin: bool = False,
        is_admin: bool = False,
        user_id: Optional[str] = None,
    ) -> User:
        """
        Create a new user.

        Raises:
            ValidationError: if the phone is empty or already registered
        """
        normalized_phone = normalize_phone(phone)
        if not normalized_phone:
            raise ValidationError("Phone number is required")

        if self.get_user_by_phone(normalized_phone) is not None:
            raise ValidationError("A user with this phone number already exists")
        if user_id and self.get_user(user_id) is not None:
            raise ValidationError(f"User {user_id} already exists")

        user = User(
            phone=normalized_phone,
            name=(name or "").strip() or f"Utilisateur {normalized_phone[-4:]}",
            neighborhood=neighborhood,
            latitude=latitude,
            longitude=longitude,
            has_cin=has_cin,
            is_admin=is_admin,
        )
        if user_id:
            user.id = user_id

        self.db.add(user)
        commit_or_raise(self.db, "create user")
        self.db.refresh(user)

        logger.info(f"User created: {user.id}")
        return user

    def update_user(self, user_id: str, requester_id: Optional[str], update_data: Dict) -> User:
        """
        Update a user's own profile fields.

        Raises:
            NotFoundError: unknown user
            ForbiddenError: requester is not the user
        """
        user = self.require_user(user_id)
        if requester_id != user.id:
            raise ForbiddenError("Users can only update their own profile")

        for field in ("name", "neighborhood", "latitude", "longitude"):
            if field in update_data and update_data[field] is not None:
                setattr(user, field, update_data[field])

        commit_or_raise(self.db, "update user")
        self.db.refresh(user)
        return user

    def admin_update_user(self, user_id: str, admin_id: Optional[str], update_data: Dict) -> User:
        """Change trust flags (is_admin, has_cin)."""
        admin = self.require_admin(admin_id)
        user = self.require_user(user_id)

        for field in ("is_admin", "has_cin"):
            if field in update_data and update_data[field] is not None:
                setattr(user, field, bool(update_data[field]))

        commit_or_raise(self.db, "update user flags")
        self.db.refresh(user)
        logger.info(f"Admin {admin.id} updated flags of user {user.id}: {update_data}")
        return user

    def list_users(self, admin_id: Optional[str], limit: int = 100) -> List[User]:
        self.require_admin(admin_id)
        stmt = select(User).order_by(User.created_at.desc()).limit(limit)
        return list(self.db.scalars(stmt))

    def get_user_stats(self, user_id: str) -> Dict:
        """
        Counters for a user's profile page.
        Unknown users get zeros rather than an error.
        """
        user = self.get_user(user_id)
        if user is None:
            return {
                "alerts_count": 0,
                "validations_count": 0,
                "confirmed_alerts_count": 0,
                "fake_alerts_count": 0,
            }

        def count_status(status: AlertStatus) -> int:
            stmt = select(func.count(Alert.id)).where(Alert.author_id == user_id, Alert.status == status.value)
            return self.db.scalar(stmt) or 0

        return {
            "alerts_count": user.alerts_count or 0,
            "validations_count": user.validations_count or 0,
            "confirmed_alerts_count": count_status(AlertStatus.CONFIRMED),
            "fake_alerts_count": count_status(AlertStatus.FAKE),
        }

    def get_system_stats(self) -> Dict:
        def count_alerts(status: Optional[AlertStatus] = None) -> int:
            stmt = select(func.count(Alert.id))
            if status is not None:
                stmt = stmt.where(Alert.status == status.value)
            return self.db.scalar(stmt) or 0

        return {
            "users_count": self.db.scalar(select(func.count(User.id))) or 0,
            "alerts_count": count_alerts(),
            "confirmed_alerts_count": count_alerts(AlertStatus.CONFIRMED),
            "pending_alerts_count": count_alerts(AlertStatus.PENDING),
            "resolved_alerts_count": count_alerts(AlertStatus.RESOLVED),
            "fake_alerts_count": count_alerts(AlertStatus.FAKE),
            "validations_count": self.db.scalar(select(func.count(AlertValidation.id))) or 0,
        }


def get_user_service(db: Session) -> UserService:
    """Build a UserService bound to the request's session."""
    return UserService(db)
