from datetime import datetime
from typing import Optional
from enum import Enum
from sqlalchemy import Index
from sqlmodel import Field, SQLModel

from .base import UTCTimestamp, new_id, utcnow


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Task(SQLModel, table=True):
    """A work item owned by exactly one user.

    Attributes:
        id: Unique identifier for the task
        user_id: Owning user, assigned by the server
        title: Task title (1-200 chars)
        description: Optional detailed description (up to 1000 chars)
        status: pending, in_progress or completed
        priority: low, medium or high
        due_date: Optional due date (UTC)
        completed_at: Set while status is completed, cleared otherwise
        created_at: Timestamp when task was created
        updated_at: Timestamp when task was last updated
    """
    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_user_status", "user_id", "status"),
        Index("ix_tasks_user_priority", "user_id", "priority"),
        Index("ix_tasks_user_due_date", "user_id", "due_date"),
        Index("ix_tasks_user_created_at", "user_id", "created_at"),
    )

    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    title: str = Field(max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    status: TaskStatus = Field(default=TaskStatus.PENDING)
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM)
    due_date: Optional[datetime] = Field(default=None, sa_type=UTCTimestamp)
    completed_at: Optional[datetime] = Field(default=None, sa_type=UTCTimestamp)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCTimestamp)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCTimestamp)

    def apply_status(self, status: TaskStatus, now: Optional[datetime] = None) -> None:
        """Set the status and keep ``completed_at`` in step with it."""
        self.status = status
        if status == TaskStatus.COMPLETED:
            if self.completed_at is None:
                self.completed_at = now or utcnow()
        else:
            self.completed_at = None
