from __future__ import annotations

from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status
from sqlalchemy.orm import Session

from ..auth import get_current_user_id
from ..config import settings
from ..database import get_db
from ..realtime import NotificationHub, get_hub
from ..schemas import (
    JobCreate,
    JobEnvelope,
    JobListOut,
    JobRemovedEnvelope,
    JobUpdate,
    StatusOptionsOut,
)
from ..services import DEFAULT_PAGE_SIZE, STATUS_OPTIONS, JobService

router = APIRouter(prefix="/jobs", tags=["jobs"])


def get_job_service(
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    hub: NotificationHub = Depends(get_hub),
) -> JobService:
    """Job service whose notifications go out after the response is sent."""
    origin = request.headers.get(settings.SOCKET_ID_HEADER)

    def notify(owner_id: str, event: str, payload: Any) -> None:
        background_tasks.add_task(hub.emit, owner_id, event, payload, exclude=origin)

    return JobService(db, notify=notify)


@router.get("", response_model=JobListOut)
def list_jobs(
    status_filter: str | None = Query(None, alias="status"),
    search: str | None = Query(None),
    page: int = Query(1),
    limit: int = Query(DEFAULT_PAGE_SIZE),
    sort: str | None = Query(None, description="createdAt, company, status or position; prefix '-' for descending"),
    user_id: str = Depends(get_current_user_id),
    service: JobService = Depends(get_job_service),
):
    result = service.list(user_id, status=status_filter, search=search, page=page, limit=limit, sort=sort)
    return JobListOut(
        data=result.items,
        count=len(result.items),
        total_jobs=result.total_count,
        num_of_pages=result.page_count,
        current_page=result.page,
    )


@router.get("/status-options", response_model=StatusOptionsOut)
def status_options(_: str = Depends(get_current_user_id)):
    return {"data": STATUS_OPTIONS}


@router.get("/{job_id}", response_model=JobEnvelope)
def get_job(
    job_id: str,
    user_id: str = Depends(get_current_user_id),
    service: JobService = Depends(get_job_service),
):
    return {"data": service.get(user_id, job_id)}


@router.post("", response_model=JobEnvelope, status_code=status.HTTP_201_CREATED)
def create_job(
    payload: JobCreate,
    user_id: str = Depends(get_current_user_id),
    service: JobService = Depends(get_job_service),
):
    job = service.create(user_id, payload.model_dump(exclude_unset=True))
    return {"message": "Job created successfully", "data": job}


@router.put("/{job_id}", response_model=JobEnvelope)
def update_job(
    job_id: str,
    payload: JobUpdate,
    user_id: str = Depends(get_current_user_id),
    service: JobService = Depends(get_job_service),
):
    job = service.update(user_id, job_id, payload.model_dump(exclude_unset=True))
    return {"message": "Job updated successfully", "data": job}


@router.delete("/{job_id}", response_model=JobRemovedEnvelope)
def delete_job(
    job_id: str,
    user_id: str = Depends(get_current_user_id),
    service: JobService = Depends(get_job_service),
):
    removed = service.delete(user_id, job_id)
    return {"message": "Job deleted successfully", "data": removed}
