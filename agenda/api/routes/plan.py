"""Agenda generation and confirmation endpoints."""
from __future__ import annotations

from time import perf_counter
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from agenda.api.schemas.plan import (
    AgendaBlockPayload,
    AgendaResponse,
    PlanConfirmRequest,
    PlanGenerateRequest,
    PlanGenerateResponse,
)
from agenda.core.context import bind_user_id
from agenda.db.deps import get_db
from agenda.observability.metrics import log_metric
from agenda.observability.tracing import trace
from agenda.planning.external import Scheduler
from agenda.planning.factory import build_scheduler
from agenda.services.agenda_service import block_payload, generate_agenda, load_agenda, replace_agenda

router = APIRouter(prefix="/plan")


def get_scheduler() -> Scheduler:
    """Scheduler chosen by PLANNER_STRATEGY; overridden in tests."""
    return build_scheduler()


@router.post("/generate", response_model=PlanGenerateResponse, tags=["plan"])
def plan_generate(
    request: Request,
    payload: PlanGenerateRequest,
    db: Session = Depends(get_db),
    scheduler: Scheduler = Depends(get_scheduler),
) -> PlanGenerateResponse:
    """Propose an agenda for the user's backlog. Nothing is stored."""
    bind_user_id(payload.user_id)
    request_id = getattr(request.state, "request_id", None)
    start = perf_counter()
    with trace(
        "plan.generate",
        metadata={"horizon_hours": payload.horizon_hours, "energy": payload.energy},
        user_id=str(payload.user_id),
        request_id=request_id,
    ):
        result = generate_agenda(
            db,
            user_id=payload.user_id,
            horizon_hours=payload.horizon_hours,
            energy=payload.energy,
            scheduler=scheduler,
            request_id=request_id,
        )

    latency_ms = (perf_counter() - start) * 1000
    log_metric("plan.generate.blocks", len(result.blocks), metadata={"user_id": str(payload.user_id)})
    log_metric("plan.generate.total_hours", result.total_hours, metadata={"user_id": str(payload.user_id)})
    log_metric("plan.generate.latency_ms", latency_ms, metadata={"strategy": result.strategy})

    return PlanGenerateResponse(
        user_id=payload.user_id,
        blocks=[
            AgendaBlockPayload(id=block.id, project_id=block.project_id, start=block.start, end=block.end)
            for block in result.blocks
        ],
        total_hours=result.total_hours,
        strategy=result.strategy,
        request_id=request_id or "",
    )


@router.post("/confirm", response_model=AgendaResponse, status_code=status.HTTP_201_CREATED, tags=["plan"])
def plan_confirm(
    request: Request,
    payload: PlanConfirmRequest,
    db: Session = Depends(get_db),
) -> AgendaResponse:
    """Replace the user's stored agenda with the confirmed blocks."""
    bind_user_id(payload.user_id)
    request_id = getattr(request.state, "request_id", None)
    start = perf_counter()
    with trace(
        "plan.confirm",
        metadata={"block_count": len(payload.blocks)},
        user_id=str(payload.user_id),
        request_id=request_id,
    ):
        confirmed = replace_agenda(db, user_id=payload.user_id, blocks=payload.blocks, request_id=request_id)

    latency_ms = (perf_counter() - start) * 1000
    log_metric("plan.confirm.blocks", len(confirmed.blocks), metadata={"user_id": str(payload.user_id)})
    log_metric("plan.confirm.latency_ms", latency_ms, metadata={"user_id": str(payload.user_id)})

    return AgendaResponse(
        user_id=payload.user_id,
        blocks=[block_payload(row) for row in confirmed.blocks],
        total_hours=confirmed.total_hours,
        request_id=request_id or "",
    )


@router.get("/agenda", response_model=AgendaResponse, tags=["plan"])
def plan_agenda_latest(
    request: Request,
    user_id: UUID = Query(..., description="User ID"),
    db: Session = Depends(get_db),
) -> AgendaResponse:
    """Return the user's confirmed agenda ordered by start time."""
    request_id = getattr(request.state, "request_id", None)
    with trace("plan.agenda", metadata={"route": "/plan/agenda"}, user_id=str(user_id), request_id=request_id):
        rows = load_agenda(db, user_id)

    total_hours = sum((row.end - row.start).total_seconds() for row in rows) / 3600
    return AgendaResponse(
        user_id=user_id,
        blocks=[block_payload(row) for row in rows],
        total_hours=total_hours,
        request_id=request_id or "",
    )
