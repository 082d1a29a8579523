"""Project (backlog) CRUD routes."""
from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy import asc
from sqlalchemy.orm import Session

from agenda.api.schemas.project import ProjectCreateRequest, ProjectResponse, ProjectUpdateRequest
from agenda.core.context import bind_user_id
from agenda.db.deps import get_db
from agenda.db.models.agent_action_log import AgentActionLog
from agenda.db.models.project import Project
from agenda.observability.metrics import log_metric
from agenda.observability.tracing import trace
from agenda.services.user_service import get_or_create_user

router = APIRouter()


@router.get("/projects", response_model=List[ProjectResponse], tags=["projects"])
def list_projects(
    http_request: Request,
    user_id: UUID = Query(..., description="User ID owning the projects"),
    db: Session = Depends(get_db),
) -> List[ProjectResponse]:
    """List a user's backlog in creation order."""
    request_id = getattr(http_request.state, "request_id", None)
    with trace("project.list", metadata={"route": "/projects"}, user_id=str(user_id), request_id=request_id):
        projects = (
            db.query(Project)
            .filter(Project.user_id == user_id)
            .order_by(asc(Project.created_at), asc(Project.id))
            .all()
        )

    log_metric("project.list.count", len(projects), metadata={"user_id": str(user_id)})
    return [ProjectResponse.model_validate(project) for project in projects]


@router.get("/projects/{project_id}", response_model=ProjectResponse, tags=["projects"])
def get_project(
    project_id: UUID,
    user_id: UUID = Query(..., description="User ID owning the project"),
    db: Session = Depends(get_db),
) -> ProjectResponse:
    project = _load_owned_project(db, project_id, user_id)
    return ProjectResponse.model_validate(project)


@router.post("/projects", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED, tags=["projects"])
def create_project(
    payload: ProjectCreateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> ProjectResponse:
    """Add a project to the user's backlog."""
    bind_user_id(payload.user_id)
    request_id = getattr(http_request.state, "request_id", None)
    try:
        with trace(
            "project.create",
            metadata={"route": "/projects", "category": payload.category, "priority": payload.priority},
            user_id=str(payload.user_id),
            request_id=request_id,
        ):
            get_or_create_user(db, payload.user_id)
            project = Project(
                user_id=payload.user_id,
                title=payload.title,
                category=payload.category,
                valence=payload.valence,
                est_hours=payload.est_hours,
                priority=payload.priority,
                due_date=payload.due_date,
            )
            db.add(project)
            db.flush()
            db.add(
                AgentActionLog(
                    user_id=payload.user_id,
                    action_type="project_created",
                    action_payload={"project_id": str(project.id), "est_hours": payload.est_hours},
                    reason="Project added to backlog",
                    request_id=request_id,
                )
            )
            db.commit()
            db.refresh(project)
    except Exception:
        db.rollback()
        raise

    log_metric("project.create.success", 1, metadata={"user_id": str(payload.user_id)})
    return ProjectResponse.model_validate(project)


@router.patch("/projects/{project_id}", response_model=ProjectResponse, tags=["projects"])
def update_project(
    project_id: UUID,
    payload: ProjectUpdateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> ProjectResponse:
    """Apply a partial update; omitted fields keep their value."""
    bind_user_id(payload.user_id)
    project = _load_owned_project(db, project_id, payload.user_id)
    request_id = getattr(http_request.state, "request_id", None)
    updates = payload.model_dump(exclude_unset=True, exclude={"user_id"})
    updates = {field: value for field, value in updates.items() if value is not None}

    try:
        with trace(
            "project.update",
            metadata={"route": f"/projects/{project_id}", "fields": sorted(updates)},
            user_id=str(payload.user_id),
            request_id=request_id,
        ):
            for field, value in updates.items():
                setattr(project, field, value)
            db.add(project)
            db.commit()
            db.refresh(project)
    except Exception:
        db.rollback()
        raise

    log_metric("project.update.fields", len(updates), metadata={"project_id": str(project_id)})
    return ProjectResponse.model_validate(project)


@router.delete("/projects/{project_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["projects"])
def delete_project(
    project_id: UUID,
    http_request: Request,
    user_id: UUID = Query(..., description="User ID owning the project"),
    db: Session = Depends(get_db),
) -> Response:
    """Remove a project; its confirmed agenda blocks go with it."""
    project = _load_owned_project(db, project_id, user_id)
    request_id = getattr(http_request.state, "request_id", None)
    try:
        with trace(
            "project.delete",
            metadata={"route": f"/projects/{project_id}"},
            user_id=str(user_id),
            request_id=request_id,
        ):
            db.delete(project)
            db.add(
                AgentActionLog(
                    user_id=user_id,
                    action_type="project_deleted",
                    action_payload={"project_id": str(project_id)},
                    reason="Project removed from backlog",
                    request_id=request_id,
                )
            )
            db.commit()
    except Exception:
        db.rollback()
        raise

    log_metric("project.delete.success", 1, metadata={"user_id": str(user_id)})
    return Response(status_code=status.HTTP_204_NO_CONTENT)


def _load_owned_project(db: Session, project_id: UUID, user_id: UUID) -> Project:
    project = db.get(Project, project_id)
    if not project:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
    if project.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Project does not belong to user")
    return project
