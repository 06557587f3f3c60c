"""SQLAlchemy models."""
from sqlalchemy import (
    Boolean, Column, String, Text, DateTime, ForeignKey, CheckConstraint, Index, JSON, Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
import uuid
from datetime import datetime, timezone
from .database import Base


USER_ROLES: tuple[str, ...] = ("ADMIN", "USER")
EQUIPMENT_STATUSES: tuple[str, ...] = ("IN_SERVICE", "OUT_OF_SERVICE", "MAINTENANCE", "LOANED")
EVENT_TYPES: tuple[str, ...] = (
    "LOAN",
    "RETURN",
    "MAINTENANCE_START",
    "MAINTENANCE_END",
    "STATUS_CHANGE",
    "TAG_ASSIGNED",
    "TAG_REMOVED",
)

# JSONB on Postgres, plain JSON elsewhere (SQLite in tests).
JsonDocument = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _in_list(column_name: str, values: tuple[str, ...]) -> str:
    quoted = ", ".join(f"'{value}'" for value in values)
    return f"{column_name} IN ({quoted})"


class User(Base):
    """User model."""
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    # Always stored lowercase; uniqueness is therefore case-insensitive.
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    role = Column(String(20), nullable=False, default="USER", index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint(_in_list("role", USER_ROLES), name="chk_user_role"),
    )

    # Relationships
    equipments_created = relationship("Equipment", back_populates="creator")
    events = relationship("EquipmentEvent", back_populates="user")


class Equipment(Base):
    """Tracked physical equipment."""
    __tablename__ = "equipments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=True)
    category = Column(String(50), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="IN_SERVICE", index=True)
    location = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    # Set once at creation, never reassigned.
    created_by = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint(_in_list("status", EQUIPMENT_STATUSES), name="chk_equipment_status"),
    )

    # Relationships
    creator = relationship("User", back_populates="equipments_created")
    tag = relationship("NfcTag", back_populates="equipment", uselist=False)
    events = relationship(
        "EquipmentEvent",
        back_populates="equipment",
        cascade="all, delete-orphan",
    )


class NfcTag(Base):
    """NFC tag identifier; unbound tags stay as reusable inventory."""
    __tablename__ = "nfc_tags"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tag_id = Column(String(50), unique=True, nullable=False, index=True)
    # Unique: at most one tag per equipment.
    equipment_id = Column(Uuid, ForeignKey("equipments.id", ondelete="SET NULL"), unique=True, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    equipment = relationship("Equipment", back_populates="tag")


class EquipmentEvent(Base):
    """Append-only audit trail for an equipment."""
    __tablename__ = "equipment_events"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    equipment_id = Column(Uuid, ForeignKey("equipments.id", ondelete="CASCADE"), nullable=False)
    type = Column(String(30), nullable=False)
    description = Column(Text, nullable=True)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    # "metadata" is reserved on declarative classes.
    event_metadata = Column("metadata", JsonDocument, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint(_in_list("type", EVENT_TYPES), name="chk_equipment_event_type"),
        Index("idx_equipment_events_equipment_created", "equipment_id", "created_at"),
        Index("idx_equipment_events_created", "created_at"),
    )

    # Relationships
    equipment = relationship("Equipment", back_populates="events")
    user = relationship("User", back_populates="events")
