# backend/formadb/apps/trainings/models.py

from __future__ import annotations

import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from ...database import Base
from ...utils.identifiers import generate_uuid7


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# ENUMS
# ---------------------------------------------------------------------------


class TrainingStatus(str, enum.Enum):
    DRAFT = "draft"
    NEW = "new"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# ---------------------------------------------------------------------------
# COMPANIES
# ---------------------------------------------------------------------------


class Company(Base):
    __tablename__ = "companies"

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    name = Column(String(255), nullable=False)
    address = Column(String(255), nullable=True)
    postal_code = Column(String(16), nullable=True)
    city = Column(String(128), nullable=True)
    country = Column(String(64), nullable=True)
    siret = Column(String(32), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(64), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    def __repr__(self) -> str:
        return f"<Company id={self.id} name={self.name!r}>"


# ---------------------------------------------------------------------------
# TRAININGS
# ---------------------------------------------------------------------------


class Training(Base):
    """
    One scheduled course instance.

    The JSON columns (objectives, the four method sets, time_slots) hold
    whatever shape was saved over the years: lists, dicts, JSON-encoded
    strings or bare text. Read them through trainings.normalizer only.
    """

    __tablename__ = "trainings"
    __table_args__ = (
        Index("ix_trainings_company_status", "company_id", "status"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=True)
    objectives = Column(JSON, nullable=True)

    evaluation_methods = Column(JSON, nullable=True)
    tracking_methods = Column(JSON, nullable=True)
    pedagogical_methods = Column(JSON, nullable=True)
    material_elements = Column(JSON, nullable=True)

    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    duration = Column(String(64), nullable=True)
    time_slots = Column(JSON, nullable=True)
    location = Column(String(255), nullable=True)

    trainer_id = Column(String(36), nullable=True, index=True)
    trainer_name = Column(String(255), nullable=True)
    company_id = Column(String(36), ForeignKey("companies.id", ondelete="SET NULL"), nullable=True, index=True)
    price = Column(Float, nullable=True)
    status = Column(String(32), nullable=False, default=TrainingStatus.DRAFT.value, index=True)

    created_by = Column(String(36), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    company = relationship("Company", lazy="joined")
    participants = relationship(
        "Participant",
        back_populates="training",
        order_by="Participant.created_at",
    )

    def __repr__(self) -> str:
        return f"<Training id={self.id} title={self.title!r} status={self.status}>"


class Participant(Base):
    """Learner attached to zero or one training."""

    __tablename__ = "participants"
    __table_args__ = (
        Index("ix_participants_training_company", "training_id", "company_id"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    training_id = Column(String(36), ForeignKey("trainings.id", ondelete="SET NULL"), nullable=True, index=True)
    company_id = Column(String(36), ForeignKey("companies.id", ondelete="SET NULL"), nullable=True, index=True)
    first_name = Column(String(128), nullable=False)
    last_name = Column(String(128), nullable=False)
    job_position = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    company_name = Column("company", String(255), nullable=True)
    status = Column(String(64), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    training = relationship("Training", back_populates="participants")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<Participant id={self.id} training={self.training_id}>"


# ---------------------------------------------------------------------------
# ORGANIZATION SETTINGS
# ---------------------------------------------------------------------------


class OrganizationSettings(Base):
    """Single row describing the training organization itself."""

    __tablename__ = "organization_settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_name = Column(String(255), nullable=True)
    address = Column(String(255), nullable=True)
    postal_code = Column(String(16), nullable=True)
    city = Column(String(128), nullable=True)
    country = Column(String(64), nullable=True)
    siret = Column(String(32), nullable=True)
    activity_declaration_number = Column(String(64), nullable=True)
    representative_name = Column(String(255), nullable=True)
    representative_title = Column(String(128), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(64), nullable=True)
    website = Column(String(255), nullable=True)

    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)
