# gasy_hub/db/models.py

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    """
    A community member. Phone number is the primary login identity.
    Credentials are handled outside this service.
    """
    __tablename__ = "users"

    id = Column(String(50), primary_key=True, default=new_id)
    name = Column(String(120), nullable=False)
    phone = Column(String(30), unique=True, index=True, nullable=False)
    neighborhood = Column(String(120), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    # Verified national identity card; surfaced to other users as a trust signal
    has_cin = Column(Boolean, default=False, nullable=False)
    is_admin = Column(Boolean, default=False, nullable=False)

    alerts_count = Column(Integer, default=0, nullable=False)
    validations_count = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    alerts = relationship("Alert", back_populates="author", cascade="all, delete-orphan", passive_deletes=True)

    def __repr__(self):
        return f"<User(id='{self.id}', phone='{self.phone}', is_admin={self.is_admin})>"


class Alert(Base):
    """
    An incident report ("SOS alert").

    confirmed_count / rejected_count always equal the number of ledger rows
    with is_valid true / false for this alert.
    """
    __tablename__ = "alerts"

    id = Column(String(50), primary_key=True, default=new_id)
    reason = Column(Text, nullable=False)
    description = Column(Text, nullable=False)
    location = Column(Text, nullable=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    status = Column(String(20), nullable=False, default="pending")
    urgency = Column(String(10), nullable=False, default="medium")
    author_id = Column(String(50), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    confirmed_count = Column(Integer, default=0, nullable=False)
    rejected_count = Column(Integer, default=0, nullable=False)
    view_count = Column(Integer, default=0, nullable=False)

    # List of file references ("/uploads/<name>" or absolute URLs)
    media = Column(JSON, default=list, nullable=False)

    resolved_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    author = relationship("User", back_populates="alerts")
    validations = relationship(
        "AlertValidation",
        back_populates="alert",
        order_by="AlertValidation.id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    comments = relationship(
        "AlertComment",
        back_populates="alert",
        order_by="AlertComment.id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    views = relationship("AlertView", cascade="all, delete-orphan", passive_deletes=True)
    status_history = relationship(
        "AlertStatusChange",
        order_by="AlertStatusChange.id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("alerts_author_id_idx", "author_id"),
        Index("alerts_status_idx", "status"),
        Index("alerts_created_at_idx", "created_at"),
    )

    def __repr__(self):
        return f"<Alert(id='{self.id}', status='{self.status}', confirmed={self.confirmed_count}, rejected={self.rejected_count})>"


class AlertValidation(Base):
    """
    Vote ledger row: user U has voted on alert A.
    The unique constraint is what makes a second vote fail.
    """
    __tablename__ = "alert_validations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    alert_id = Column(String(50), ForeignKey("alerts.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(50), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    is_valid = Column(Boolean, nullable=False)  # True = confirm, False = reject
    validated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    alert = relationship("Alert", back_populates="validations")

    __table_args__ = (
        UniqueConstraint("alert_id", "user_id", name="alert_validations_unique"),
        Index("alert_validations_alert_id_idx", "alert_id"),
        Index("alert_validations_user_id_idx", "user_id"),
    )


class AlertComment(Base):
    __tablename__ = "alert_comments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    alert_id = Column(String(50), ForeignKey("alerts.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(50), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = Column(String(20), nullable=False, default="text")
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    alert = relationship("Alert", back_populates="comments")
    user = relationship("User")

    __table_args__ = (
        Index("alert_comments_alert_id_idx", "alert_id"),
    )


class AlertView(Base):
    """First view of an alert by a given user."""
    __tablename__ = "alert_views"

    id = Column(Integer, primary_key=True, autoincrement=True)
    alert_id = Column(String(50), ForeignKey("alerts.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(50), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    viewed_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("alert_id", "user_id", name="alert_views_unique"),
    )


class AlertStatusChange(Base):
    """
    Append-only audit entry for a status change.
    actor_id is a user id, or "system" for vote-threshold transitions.
    """
    __tablename__ = "alert_status_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    alert_id = Column(String(50), ForeignKey("alerts.id", ondelete="CASCADE"), nullable=False)
    actor_id = Column(String(50), nullable=False)
    from_status = Column(String(20), nullable=True)
    to_status = Column(String(20), nullable=False)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        Index("alert_status_history_alert_id_idx", "alert_id"),
    )
