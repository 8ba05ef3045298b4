from __future__ import annotations
import re
from datetime import datetime
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from .config import settings
from .models import JobStatus, as_utc

class CamelModel(BaseModel):
    # JSON speaks camelCase (jobUrl, ownerId); Python attributes stay snake_case
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

# Users

class UserCreate(BaseModel):
    name: str = Field(min_length=2, max_length=50)
    email: EmailStr
    password: str

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 2:
            raise ValueError("Name must be between 2 and 50 characters")
        return value

    @field_validator("password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        return check_password_strength(value)

class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)

class UserOut(CamelModel):
    id: str
    name: str
    email: EmailStr
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

class UserUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=50)
    email: EmailStr | None = None

class PasswordChange(CamelModel):
    current_password: str = Field(min_length=1)
    new_password: str

    @field_validator("new_password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        return check_password_strength(value)

class ForgotPassword(BaseModel):
    email: EmailStr

class PasswordReset(BaseModel):
    token: str = Field(min_length=1)
    password: str

    @field_validator("password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        return check_password_strength(value)

def check_password_strength(value: str) -> str:
    if len(value) < settings.PASSWORD_MIN_LENGTH:
        raise ValueError(f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters long")
    if not re.search(r"\d", value):
        raise ValueError("Password must contain at least one number")
    return value

class AuthOut(BaseModel):
    token: str
    user: UserOut

class TokenOut(BaseModel):
    token: str
    message: str

class MessageOut(BaseModel):
    message: str

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"

# Jobs
# Inputs only check shape; field rules live in services.clean_job_fields.
# Unknown keys such as ownerId or createdBy are dropped here.

class JobCreate(CamelModel):
    model_config = ConfigDict(extra="ignore")

    company: str | None = None
    position: str | None = None
    status: str | None = None
    notes: str | None = None
    salary: str | None = None
    location: str | None = None
    contact: str | None = None
    job_url: str | None = None

class JobUpdate(JobCreate):
    pass

class JobOut(CamelModel):
    id: str
    company: str
    position: str
    status: JobStatus
    notes: str
    salary: str
    location: str
    contact: str
    job_url: str
    owner_id: str
    created_at: datetime
    updated_at: datetime

    # SQLite returns naive values; they are stored as UTC
    @field_validator("created_at", "updated_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

class JobEnvelope(BaseModel):
    message: str | None = None
    data: JobOut

class JobListOut(CamelModel):
    data: list[JobOut]
    count: int
    total_jobs: int
    num_of_pages: int
    current_page: int

class JobRemoved(BaseModel):
    id: str
    company: str

class JobRemovedEnvelope(BaseModel):
    message: str | None = None
    data: JobRemoved

class StatusOption(BaseModel):
    value: JobStatus
    label: str
    color: str

class StatusOptionsOut(BaseModel):
    data: list[StatusOption]

class StatsOut(BaseModel):
    applied: int = 0
    interview: int = 0
    technical: int = 0
    offer: int = 0
    rejected: int = 0
    accepted: int = 0
