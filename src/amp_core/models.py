"""SQLAlchemy database models."""
from datetime import datetime
from uuid import uuid4
import enum

from sqlalchemy import (
    Column,
    String,
    Text,
    Date,
    DateTime,
    ForeignKey,
    Enum,
    Numeric,
    CheckConstraint,
    Uuid,
)
from sqlalchemy.orm import declarative_base

# Base class for all models
Base = declarative_base()


class UserRole(str, enum.Enum):
    """Platform role of a user."""

    OWNER = "owner"      # Submits accounts for management
    MANAGER = "manager"  # Executes tasks against assigned accounts
    ADMIN = "admin"      # Platform-wide override


class UserStatus(str, enum.Enum):
    """User lifecycle status. Only active users may log in."""

    PENDING = "pending"
    ACTIVE = "active"
    SUSPENDED = "suspended"


class AccountStatus(str, enum.Enum):
    """Managed account lifecycle status."""

    PENDING = "pending"
    ACTIVE = "active"  # Admin-only transition
    SUSPENDED = "suspended"
    COMPLETED = "completed"


class TaskStatus(str, enum.Enum):
    """Task lifecycle status, coupled with completion_status."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TaskPriority(str, enum.Enum):
    """Task priority enum."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def _enum_values(enum_cls):
    # Persist enum values (lowercase, hyphenated) instead of member names
    return [e.value for e in enum_cls]


class User(Base):
    """
    Platform user.

    Users register themselves with status=pending and stay locked out until
    an admin activates them. The password column holds a bcrypt hash and is
    never copied into response schemas.
    """

    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid4)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password = Column(String(255), nullable=False)
    role = Column(
        Enum(UserRole, name="user_role", values_callable=_enum_values),
        nullable=False,
        default=UserRole.OWNER,
        index=True,
    )
    status = Column(
        Enum(UserStatus, name="user_status", values_callable=_enum_values),
        nullable=False,
        default=UserStatus.PENDING,
        index=True,
    )

    # Audit fields
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role.value if self.role else None})>"


class ManagedAccount(Base):
    """
    Third-party account submitted by an owner for management.

    Credentials are stored as an opaque AES ciphertext (see encryption.py)
    and only decrypted for single-record reads.
    """

    __tablename__ = "managed_accounts"

    id = Column(Uuid, primary_key=True, default=uuid4)
    owner_id = Column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    manager_id = Column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,  # Unassigned
        index=True,
    )
    account_type = Column(String(100), nullable=False)
    credentials = Column(Text, nullable=True)
    status = Column(
        Enum(AccountStatus, name="account_status", values_callable=_enum_values),
        nullable=False,
        default=AccountStatus.PENDING,
        index=True,
    )
    management_instructions = Column(Text, nullable=False, default="")

    # Audit fields
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<ManagedAccount {self.id}: {self.account_type} ({self.status.value if self.status else None})>"


class Task(Base):
    """Unit of work executed by a manager against a managed account.

    status and completion_status are coupled; every write path goes through
    state_machine.reconcile_progress so the pair never disagrees.
    """

    __tablename__ = "tasks"

    id = Column(Uuid, primary_key=True, default=uuid4)
    account_id = Column(
        Uuid,
        ForeignKey("managed_accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Core task fields
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    priority = Column(
        Enum(TaskPriority, name="task_priority", values_callable=_enum_values),
        nullable=False,
        default=TaskPriority.MEDIUM,
        index=True,
    )
    status = Column(
        Enum(TaskStatus, name="task_status", values_callable=_enum_values),
        nullable=False,
        default=TaskStatus.PENDING,
        index=True,
    )
    due_date = Column(Date, nullable=True, index=True)
    completion_status = Column(Numeric(5, 2, asdecimal=False), nullable=False, default=0)

    # Ownership and assignment
    # created_by is required on create; SET NULL keeps tasks when their creator is removed
    created_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    assigned_to = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    # Audit fields
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint(
            "completion_status >= 0 AND completion_status <= 100",
            name="valid_completion_status",
        ),
    )

    def __repr__(self) -> str:
        return f"<Task {self.id}: {self.title[:30] if self.title else ''}>"
