"""Schemas for project (backlog) CRUD."""
from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _strip_required(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    trimmed = value.strip()
    if not trimmed:
        raise ValueError("must not be blank")
    return trimmed


class ProjectCreateRequest(BaseModel):
    user_id: UUID
    title: str = Field(..., max_length=200)
    category: str = Field(..., max_length=100)
    valence: int = Field(..., ge=1, le=5, description="Importance, 1 (low) to 5 (high).")
    est_hours: float = Field(..., ge=0.1, description="Estimated total effort in hours.")
    priority: int = Field(..., ge=1, le=5, description="Urgency, 1 (low) to 5 (high).")
    due_date: datetime

    @field_validator("title", "category")
    @classmethod
    def strip_text(cls, value: Optional[str]) -> Optional[str]:
        return _strip_required(value)


class ProjectUpdateRequest(BaseModel):
    user_id: UUID
    title: Optional[str] = Field(default=None, max_length=200)
    category: Optional[str] = Field(default=None, max_length=100)
    valence: Optional[int] = Field(default=None, ge=1, le=5)
    est_hours: Optional[float] = Field(default=None, ge=0.1)
    priority: Optional[int] = Field(default=None, ge=1, le=5)
    due_date: Optional[datetime] = None

    @field_validator("title", "category")
    @classmethod
    def strip_text(cls, value: Optional[str]) -> Optional[str]:
        return _strip_required(value)


class ProjectResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    title: str
    category: str
    valence: int
    est_hours: float
    priority: int
    due_date: datetime
    created_at: datetime
    updated_at: datetime
