"""Pydantic schemas for request/response validation."""
import re
from datetime import date, datetime
from typing import Annotated, Any, Generic, Optional, TypeVar
from uuid import UUID

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator, model_validator

from .models import (
    UserRole,
    UserStatus,
    AccountStatus,
    TaskStatus,
    TaskPriority,
)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 8

# Roles a user may pick at registration
SELF_REGISTER_ROLES = (None, UserRole.OWNER, UserRole.MANAGER)

T = TypeVar("T")


def _check_email(value: str) -> str:
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Please provide a valid email address")
    return value


def _check_password(value: str) -> str:
    if len(value) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    return value


Email = Annotated[str, Field(max_length=255), AfterValidator(_check_email)]
Password = Annotated[str, AfterValidator(_check_password)]


def _reject_null(model: BaseModel, fields: tuple[str, ...]) -> None:
    # Explicit nulls are only allowed on nullable columns
    for name in fields:
        if name in model.model_fields_set and getattr(model, name) is None:
            raise ValueError(f"{name} cannot be null")


# Response envelopes

class DataResponse(BaseModel, Generic[T]):
    """Single-record envelope."""

    success: bool = True
    data: T


class ListResponse(BaseModel, Generic[T]):
    """List envelope with item count."""

    success: bool = True
    count: int
    data: list[T]


class MessageResponse(BaseModel):
    """Envelope for operations with no payload (deletes)."""

    success: bool = True
    data: None = None
    message: str


class ErrorResponse(BaseModel):
    success: bool = False
    error: str


# User Schemas

class UserCreate(BaseModel):
    """Registration payload. Status is never taken from the client."""

    email: Email
    password: Password
    role: Optional[UserRole] = None

    @field_validator("role")
    @classmethod
    def no_self_registered_admins(cls, v: Optional[UserRole]) -> Optional[UserRole]:
        # Admins are created by bootstrap or promoted by another admin
        if v not in SELF_REGISTER_ROLES:
            raise ValueError("Role must be owner or manager")
        return v


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class UserSelfUpdate(BaseModel):
    """Fields a user may change on their own profile."""

    model_config = ConfigDict(extra="forbid")

    email: Optional[Email] = None
    password: Optional[Password] = None

    @model_validator(mode="after")
    def no_null_login_fields(self):
        _reject_null(self, ("email", "password"))
        return self


class UserUpdate(UserSelfUpdate):
    """Admin update of any user, including role and status."""

    role: Optional[UserRole] = None
    status: Optional[UserStatus] = None

    @model_validator(mode="after")
    def no_null_enums(self):
        _reject_null(self, ("role", "status"))
        return self


class UserResponse(BaseModel):
    """User snapshot. The password hash is never part of it."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    role: UserRole
    status: UserStatus
    created_at: datetime
    updated_at: datetime


class AuthResult(BaseModel):
    user: UserResponse
    token: str


# Managed Account Schemas

class AccountCreate(BaseModel):
    """Schema for submitting an account for management."""

    account_type: str = Field(..., min_length=1, max_length=100)
    credentials: Optional[Any] = None
    management_instructions: Optional[str] = None

    @field_validator("account_type")
    @classmethod
    def account_type_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Please provide account type")
        return v


class AccountUpdate(BaseModel):
    """
    Partial account update.

    Only these five fields are writable; owner_id and timestamps are not.
    Unknown keys are rejected rather than dropped.
    """

    model_config = ConfigDict(extra="forbid")

    account_type: Optional[str] = Field(None, min_length=1, max_length=100)
    credentials: Optional[Any] = None
    status: Optional[AccountStatus] = None
    management_instructions: Optional[str] = None
    manager_id: Optional[UUID] = None

    @model_validator(mode="after")
    def no_null_required_fields(self):
        _reject_null(self, ("account_type", "status"))
        return self


class AccountStatusUpdate(BaseModel):
    status: AccountStatus


class AccountManagerAssign(BaseModel):
    manager_id: UUID


class AccountInstructionsUpdate(BaseModel):
    instructions: str

    @field_validator("instructions")
    @classmethod
    def instructions_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Please provide valid instructions")
        return v


class AccountSummary(BaseModel):
    """Credential-free account projection used by every list query."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    owner_id: UUID
    manager_id: Optional[UUID] = None
    account_type: str
    status: AccountStatus
    management_instructions: str = ""
    created_at: datetime
    updated_at: datetime


class AccountDetail(AccountSummary):
    """Single-record account snapshot with decrypted credentials (None if unreadable)."""

    credentials: Optional[Any] = None


# Task Schemas

class TaskCreate(BaseModel):
    """Schema for creating a new task."""

    account_id: UUID
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.PENDING
    due_date: Optional[date] = None
    assigned_to: Optional[UUID] = Field(None, description="Defaults to the account's manager")
    completion_status: float = Field(0, ge=0, le=100)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Task title is required")
        return v


class TaskUpdate(BaseModel):
    """Partial task update. account_id and created_by are immutable."""

    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None
    due_date: Optional[date] = None
    assigned_to: Optional[UUID] = None
    completion_status: Optional[float] = Field(None, ge=0, le=100)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("Task title cannot be blank")
        return v

    @model_validator(mode="after")
    def no_null_required_fields(self):
        _reject_null(self, ("title", "priority", "status", "completion_status"))
        return self


class TaskStatusUpdate(BaseModel):
    status: TaskStatus


class TaskProgressUpdate(BaseModel):
    progress: float = Field(..., ge=0, le=100)


class TaskAssign(BaseModel):
    manager_id: UUID


class TaskResponse(BaseModel):
    """Task snapshot. account_type is only filled by manager listings."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    account_id: UUID
    title: str
    description: Optional[str] = None
    priority: TaskPriority
    status: TaskStatus
    due_date: Optional[date] = None
    completion_status: float
    created_by: Optional[UUID] = None
    assigned_to: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime
    account_type: Optional[str] = None


class TaskCounts(BaseModel):
    """Per-status task counts, zero-filled."""

    model_config = ConfigDict(populate_by_name=True)

    total: int = 0
    pending: int = 0
    in_progress: int = Field(0, alias="in-progress")
    completed: int = 0
    cancelled: int = 0


class TaskListResponse(BaseModel):
    success: bool = True
    counts: TaskCounts
    data: list[TaskResponse]
