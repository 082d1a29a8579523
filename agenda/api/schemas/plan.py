"""Schemas for agenda generation and confirmation."""
from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator


class PlanGenerateRequest(BaseModel):
    user_id: UUID
    # Upper bound comes from PLANNER_MAX_HORIZON_HOURS, enforced when the request is built.
    horizon_hours: int = Field(..., ge=1, description="Hours of agenda to plan.")
    energy: Literal["low", "med", "medium", "high"] = "medium"


class AgendaBlockPayload(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[UUID] = None
    project_id: UUID
    start: datetime
    end: datetime

    @model_validator(mode="after")
    def check_order(self) -> "AgendaBlockPayload":
        if self.end <= self.start:
            raise ValueError("end must be after start")
        return self


class PlanGenerateResponse(BaseModel):
    user_id: UUID
    blocks: List[AgendaBlockPayload]
    total_hours: float
    strategy: str
    request_id: str


class PlanConfirmRequest(BaseModel):
    user_id: UUID
    blocks: List[AgendaBlockPayload] = Field(default_factory=list, max_length=2000)


class AgendaResponse(BaseModel):
    user_id: UUID
    blocks: List[AgendaBlockPayload]
    total_hours: float
    request_id: str
