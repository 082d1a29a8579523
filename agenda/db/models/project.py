"""Project (backlog item) ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import CheckConstraint, Column, DateTime, Float, ForeignKey, Index, Integer, Text, func
from sqlalchemy.dialects.postgresql import UUID

from agenda.db.base import Base


class Project(Base):
    __tablename__ = "projects"
    __table_args__ = (
        Index("ix_projects_user_id", "user_id"),
        CheckConstraint("valence BETWEEN 1 AND 5", name="ck_projects_valence_range"),
        CheckConstraint("priority BETWEEN 1 AND 5", name="ck_projects_priority_range"),
        CheckConstraint("est_hours > 0", name="ck_projects_est_hours_positive"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = Column(Text, nullable=False)
    category = Column(Text, nullable=False)
    valence = Column(Integer, nullable=False)
    est_hours = Column(Float, nullable=False)
    priority = Column(Integer, nullable=False)
    due_date = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
