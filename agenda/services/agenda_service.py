"""Bridges stored projects/agenda rows and the planning core."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Sequence
from uuid import UUID

from sqlalchemy import asc, delete
from sqlalchemy.orm import Session

from agenda.api.schemas.plan import AgendaBlockPayload
from agenda.core.config import settings
from agenda.db.models.agenda_block import AgendaBlock as AgendaBlockRow
from agenda.db.models.agent_action_log import AgentActionLog
from agenda.db.models.project import Project as ProjectRow
from agenda.db.models.user import User
from agenda.observability.tracing import trace
from agenda.planning.errors import InvalidArgumentError
from agenda.planning.external import Scheduler
from agenda.planning.models import EnergyLevel, PlanningRequest, PlanningResult, Project
from agenda.services.user_service import get_or_create_user

logger = logging.getLogger(__name__)


@dataclass
class ConfirmedAgenda:
    blocks: List[AgendaBlockRow]
    total_hours: float


def project_to_record(row: ProjectRow) -> Project:
    """Convert an ORM row into the immutable record the scheduler consumes."""
    due_date = row.due_date
    if due_date.tzinfo is None:
        due_date = due_date.replace(tzinfo=timezone.utc)
    return Project(
        id=row.id,
        user_id=row.user_id,
        title=row.title,
        category=row.category,
        valence=row.valence,
        estimated_hours=row.est_hours,
        priority=row.priority,
        due_date=due_date,
    )


def load_backlog(db: Session, user_id: UUID) -> List[Project]:
    rows = (
        db.query(ProjectRow)
        .filter(ProjectRow.user_id == user_id)
        .order_by(asc(ProjectRow.created_at), asc(ProjectRow.id))
        .all()
    )
    return [project_to_record(row) for row in rows]


def generate_agenda(
    db: Session,
    *,
    user_id: UUID,
    horizon_hours: float,
    energy: EnergyLevel | str,
    scheduler: Scheduler,
    request_id: str | None = None,
) -> PlanningResult:
    """Plan an agenda for the user's current backlog without persisting it."""
    backlog = load_backlog(db, user_id)
    request = PlanningRequest.build(
        backlog,
        horizon_hours,
        energy,
        user_id,
        max_horizon_hours=float(settings.planner_max_horizon_hours),
    )
    with trace(
        "agenda.generate",
        metadata={
            "backlog_size": len(backlog),
            "horizon_hours": request.horizon_hours,
            "energy": request.energy.value,
            "strategy": scheduler.name,
        },
        user_id=str(user_id),
        request_id=request_id,
    ) as planning_trace:
        result = scheduler.plan(request)
        if planning_trace:
            planning_trace.update(
                metadata={"blocks": len(result.blocks), "total_hours": result.total_hours, "used": result.strategy}
            )

    logger.info(
        "Generated %d blocks (%.1fh) from %d projects via %s",
        len(result.blocks),
        result.total_hours,
        len(backlog),
        result.strategy,
    )
    return result


def replace_agenda(
    db: Session,
    *,
    user_id: UUID,
    blocks: Sequence[AgendaBlockPayload],
    request_id: str | None = None,
) -> ConfirmedAgenda:
    """
    Swap the user's stored agenda for ``blocks`` in a single transaction.

    The user row is locked first so concurrent confirmations for the same user
    are serialized on databases that support SELECT ... FOR UPDATE.
    """
    get_or_create_user(db, user_id)
    db.query(User).filter(User.id == user_id).with_for_update().one()

    project_ids = {block.project_id for block in blocks}
    if project_ids:
        owned = {
            row.id
            for row in db.query(ProjectRow.id)
            .filter(ProjectRow.user_id == user_id, ProjectRow.id.in_(project_ids))
            .all()
        }
        unknown = sorted(str(project_id) for project_id in project_ids - owned)
        if unknown:
            db.rollback()
            raise InvalidArgumentError(f"Projects not found for user: {', '.join(unknown)}")

    ordered = sorted(blocks, key=lambda block: _as_utc(block.start))
    try:
        db.execute(delete(AgendaBlockRow).where(AgendaBlockRow.user_id == user_id))
        rows = [
            AgendaBlockRow(
                user_id=user_id,
                project_id=block.project_id,
                start=_as_utc(block.start),
                end=_as_utc(block.end),
            )
            for block in ordered
        ]
        db.add_all(rows)
        total_hours = sum((row.end - row.start).total_seconds() for row in rows) / 3600
        db.add(
            AgentActionLog(
                user_id=user_id,
                action_type="agenda_confirmed",
                action_payload={
                    "block_count": len(rows),
                    "total_hours": total_hours,
                    "project_ids": sorted(str(project_id) for project_id in project_ids),
                },
                reason="User confirmed generated agenda",
                request_id=request_id,
            )
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    for row in rows:
        db.refresh(row)
    return ConfirmedAgenda(blocks=rows, total_hours=total_hours)


def block_payload(row: AgendaBlockRow) -> AgendaBlockPayload:
    """Serialize a stored block with UTC offsets, whatever the database returns."""
    return AgendaBlockPayload(id=row.id, project_id=row.project_id, start=_as_utc(row.start), end=_as_utc(row.end))


def load_agenda(db: Session, user_id: UUID) -> List[AgendaBlockRow]:
    return (
        db.query(AgendaBlockRow)
        .filter(AgendaBlockRow.user_id == user_id)
        .order_by(asc(AgendaBlockRow.start))
        .all()
    )


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
