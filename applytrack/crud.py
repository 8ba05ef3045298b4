from __future__ import annotations
from datetime import datetime
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from . import models, security

# ---------- Users (credential store) ----------

def normalize_email(email: str) -> str:
    return email.strip().lower()

def get_user_by_email(db: Session, email: str) -> models.User | None:
    return db.query(models.User).filter(models.User.email == normalize_email(email)).first()

def get_user_by_id(db: Session, user_id: str) -> models.User | None:
    return db.get(models.User, user_id)

def create_user(db: Session, email: str, password: str, name: str = "") -> models.User:
    hashed_pw = security.hash_password(password)
    user = models.User(name=name.strip(), email=normalize_email(email), hashed_password=hashed_pw)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user

def update_user_details(db: Session, user: models.User, name: str | None = None, email: str | None = None) -> models.User:
    if name is not None:
        user.name = name.strip()
    if email is not None:
        user.email = normalize_email(email)
    db.commit()
    db.refresh(user)
    return user

def update_password(db: Session, user: models.User, password: str) -> models.User:
    """Set a new password and drop any outstanding reset token."""
    user.hashed_password = security.hash_password(password)
    user.reset_password_token = None
    user.reset_password_expires = None
    db.commit()
    db.refresh(user)
    return user

def set_reset_token(db: Session, user: models.User, token_hash: str, expires: datetime) -> None:
    user.reset_password_token = token_hash
    user.reset_password_expires = expires
    db.commit()

def get_user_by_reset_token(db: Session, token_hash: str) -> models.User | None:
    return db.execute(
        select(models.User).where(models.User.reset_password_token == token_hash)
    ).scalar_one_or_none()

def clear_reset_token(db: Session, user: models.User) -> None:
    user.reset_password_token = None
    user.reset_password_expires = None
    db.commit()

# ---------- Jobs (owner-scoped record store) ----------
# Every statement below carries the owner_id predicate.

SORT_COLUMNS = {
    "createdAt": models.Job.created_at,
    "company": models.Job.company,
    "status": models.Job.status,
    "position": models.Job.position,
}
DEFAULT_SORT = "-createdAt"

def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")

def _order_by(sort: str):
    key = sort.lstrip("-")
    column = SORT_COLUMNS[key]
    primary = column.desc() if sort.startswith("-") else column.asc()
    # id breaks ties so pages never overlap
    return primary, models.Job.id.asc()

def create_job(db: Session, owner_id: str, values: dict[str, Any]) -> models.Job:
    now = models.utcnow()
    job = models.Job(**values, owner_id=owner_id, created_at=now, updated_at=now)
    db.add(job)
    db.commit()
    db.refresh(job)
    return job

def get_job(db: Session, owner_id: str, job_id: str) -> models.Job | None:
    return db.execute(
        select(models.Job).where(models.Job.id == job_id, models.Job.owner_id == owner_id)
    ).scalar_one_or_none()

def list_jobs(
    db: Session,
    owner_id: str,
    status: models.JobStatus | None = None,
    search: str | None = None,
    sort: str = DEFAULT_SORT,
    offset: int = 0,
    limit: int = 10,
) -> tuple[list[models.Job], int]:
    """Return one page of the owner's jobs and the total matching count."""
    conditions = [models.Job.owner_id == owner_id]
    if status is not None:
        conditions.append(models.Job.status == status)
    if search:
        pattern = f"%{_escape_like(search)}%"
        conditions.append(
            or_(
                models.Job.company.ilike(pattern, escape="\\"),
                models.Job.position.ilike(pattern, escape="\\"),
                models.Job.notes.ilike(pattern, escape="\\"),
                models.Job.location.ilike(pattern, escape="\\"),
            )
        )

    total = db.execute(select(func.count(models.Job.id)).where(*conditions)).scalar_one()
    if offset >= total:
        # past the last page; skip the query so huge offsets never reach the driver
        return [], total
    rows = db.execute(
        select(models.Job).where(*conditions).order_by(*_order_by(sort)).offset(offset).limit(limit)
    ).scalars().all()
    return list(rows), total

def update_job(db: Session, owner_id: str, job_id: str, values: dict[str, Any]) -> models.Job | None:
    job = get_job(db, owner_id, job_id)
    if job is None:
        return None
    for field, value in values.items():
        setattr(job, field, value)
    db.commit()
    db.refresh(job)
    return job

def delete_job(db: Session, owner_id: str, job_id: str) -> dict[str, str] | None:
    """Delete the job and return its id and company, or None when not owned."""
    job = get_job(db, owner_id, job_id)
    if job is None:
        return None
    # read before commit expires the instance
    removed = {"id": job.id, "company": job.company}
    db.delete(job)
    db.commit()
    return removed

def count_jobs_by_status(db: Session, owner_id: str) -> dict[models.JobStatus, int]:
    rows = db.execute(
        select(models.Job.status, func.count(models.Job.id))
        .where(models.Job.owner_id == owner_id)
        .group_by(models.Job.status)
    ).all()
    return {status: count for status, count in rows}
