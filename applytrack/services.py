"""
Ownership-scoped job operations.

Every method takes the caller's user id, as resolved by the authorization gate,
and passes it to the store as the owner constraint. A job that exists but
belongs to somebody else is reported exactly like a job that does not exist.
Successful mutations are handed to the notifier after the store commit.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from sqlalchemy.orm import Session

from . import crud, models, realtime
from .errors import NotFoundError, ValidationError
from .schemas import JobOut

LOGGER = logging.getLogger(__name__)

# (owner_id, event, payload)
Notifier = Callable[[str, str, Any], None]

REQUIRED_FIELDS = {"company": "Company name", "position": "Position title"}
FIELD_LIMITS = {
    "company": 100,
    "position": 100,
    "notes": 1000,
    "salary": 50,
    "location": 100,
    "contact": 100,
    "job_url": 2048,
}
OPTIONAL_FIELDS = ("notes", "salary", "location", "contact", "job_url")

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 10
VALID_SORTS = {prefix + column for column in crud.SORT_COLUMNS for prefix in ("", "-")}

STATUS_OPTIONS = [
    {"value": models.JobStatus.APPLIED, "label": "Applied", "color": "#3b82f6"},
    {"value": models.JobStatus.INTERVIEW, "label": "Interview", "color": "#f59e0b"},
    {"value": models.JobStatus.TECHNICAL, "label": "Technical", "color": "#8b5cf6"},
    {"value": models.JobStatus.OFFER, "label": "Offer", "color": "#10b981"},
    {"value": models.JobStatus.REJECTED, "label": "Rejected", "color": "#ef4444"},
    {"value": models.JobStatus.ACCEPTED, "label": "Accepted", "color": "#059669"},
]


def parse_status(value: Any) -> models.JobStatus:
    try:
        return models.JobStatus(value)
    except ValueError:
        raise ValidationError(
            errors={"status": f"Status must be one of: {', '.join(models.JobStatus.values())}"}
        )


def clean_job_fields(fields: Mapping[str, Any], partial: bool = False) -> dict[str, Any]:
    """Validate and normalise job input.

    With ``partial`` only the keys present in ``fields`` are checked and
    returned; otherwise missing optional fields get their defaults. Keys that
    are not job fields (ownerId, createdBy, id, ...) are ignored. Raises
    ValidationError listing every invalid field.
    """
    cleaned: dict[str, Any] = {}
    errors: dict[str, str] = {}

    for name, label in REQUIRED_FIELDS.items():
        if name not in fields:
            if not partial:
                errors[name] = f"{label} is required"
            continue
        value = fields[name]
        if not isinstance(value, str) or not value.strip():
            errors[name] = f"{label} cannot be empty" if partial else f"{label} is required"
        elif len(value.strip()) > FIELD_LIMITS[name]:
            errors[name] = f"{label} cannot exceed {FIELD_LIMITS[name]} characters"
        else:
            cleaned[name] = value.strip()

    if "status" in fields and (partial or fields["status"] is not None):
        try:
            cleaned["status"] = parse_status(fields["status"])
        except ValidationError as exc:
            errors.update(exc.errors)
    elif not partial:
        cleaned["status"] = models.JobStatus.APPLIED

    for name in OPTIONAL_FIELDS:
        if name not in fields:
            if not partial:
                cleaned[name] = ""
            continue
        value = fields[name]
        if value is None:
            value = ""
        if not isinstance(value, str):
            errors[name] = f"{name} must be a string"
            continue
        cleaned[name] = value.strip()[: FIELD_LIMITS[name]]

    if errors:
        raise ValidationError("Validation failed", errors=errors)
    if partial and not cleaned:
        raise ValidationError("No update data provided")
    return cleaned


def serialize_job(job: models.Job) -> dict[str, Any]:
    return JobOut.model_validate(job).model_dump(mode="json", by_alias=True)


@dataclass
class JobPage:
    items: list[models.Job]
    total_count: int
    page_count: int
    page: int


class JobService:
    def __init__(self, db: Session, notify: Notifier | None = None) -> None:
        self.db = db
        self.notify = notify

    def create(self, caller_id: str, fields: Mapping[str, Any]) -> models.Job:
        values = clean_job_fields(fields)
        job = crud.create_job(self.db, caller_id, values)
        LOGGER.info("Job %s created by user %s", job.id, caller_id)
        self._notify(caller_id, realtime.EVENT_NEW_JOB, serialize_job(job))
        return job

    def list(
        self,
        caller_id: str,
        status: str | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        sort: str | None = None,
    ) -> JobPage:
        page = max(1, page)
        limit = min(MAX_PAGE_SIZE, max(1, limit))
        if sort not in VALID_SORTS:
            sort = crud.DEFAULT_SORT
        status_filter = None
        if status in models.JobStatus.values():
            status_filter = models.JobStatus(status)
        search = search.strip() if search else None

        items, total = crud.list_jobs(
            self.db,
            caller_id,
            status=status_filter,
            search=search or None,
            sort=sort,
            offset=(page - 1) * limit,
            limit=limit,
        )
        return JobPage(items=items, total_count=total, page_count=math.ceil(total / limit), page=page)

    def get(self, caller_id: str, job_id: str) -> models.Job:
        job = crud.get_job(self.db, caller_id, job_id)
        if job is None:
            raise NotFoundError("Job not found")
        return job

    def update(self, caller_id: str, job_id: str, fields: Mapping[str, Any]) -> models.Job:
        values = clean_job_fields(fields, partial=True)
        values["updated_at"] = models.utcnow()
        job = crud.update_job(self.db, caller_id, job_id, values)
        if job is None:
            raise NotFoundError("Job not found")
        LOGGER.info("Job %s updated by user %s", job.id, caller_id)
        self._notify(caller_id, realtime.EVENT_JOB_CHANGED, serialize_job(job))
        return job

    def delete(self, caller_id: str, job_id: str) -> dict[str, str]:
        removed = crud.delete_job(self.db, caller_id, job_id)
        if removed is None:
            raise NotFoundError("Job not found")
        LOGGER.info("Job %s deleted by user %s", removed["id"], caller_id)
        self._notify(caller_id, realtime.EVENT_JOB_REMOVED, dict(removed))
        return removed

    def stats(self, caller_id: str) -> dict[str, int]:
        counts = crud.count_jobs_by_status(self.db, caller_id)
        return {status.value: counts.get(status, 0) for status in models.JobStatus}

    def _notify(self, owner_id: str, event: str, payload: Any) -> None:
        if self.notify is None:
            return
        try:
            self.notify(owner_id, event, payload)
        except Exception:
            LOGGER.exception("Failed to dispatch %s notification for user %s", event, owner_id)
