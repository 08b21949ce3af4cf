from datetime import datetime, timezone
from typing import Annotated, List, Optional

from pydantic import AfterValidator, ConfigDict, Field, StringConstraints, model_validator
from pydantic.alias_generators import to_camel

from ..models.base import utcnow
from ..models.task import TaskPriority, TaskStatus
from .common import CamelModel, UTCDateTime

MAX_BULK_IDS = 50
MAX_PAGE_SIZE = 100
MAX_PAGE = 10**9

Title = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]
Description = Annotated[str, StringConstraints(strip_whitespace=True, max_length=1000)]


def _future_due_date(value: datetime) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    if value <= utcnow():
        raise ValueError("Due date must be in the future")
    return value


DueDate = Annotated[datetime, AfterValidator(_future_due_date)]


class TaskCreate(CamelModel):
    title: Title
    description: Optional[Description] = None
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[DueDate] = None
    # user_id is derived from auth, not part of the create payload


class TaskUpdate(CamelModel):
    title: Optional[Title] = None
    description: Optional[Description] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[DueDate] = None

    @model_validator(mode="after")
    def reject_null_required_fields(self) -> "TaskUpdate":
        for name in ("title", "status", "priority"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class TaskStatusUpdate(CamelModel):
    status: TaskStatus


class TaskPriorityUpdate(CamelModel):
    priority: TaskPriority


class BulkTaskUpdate(CamelModel):
    """Fields a bulk update may touch."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None

    @model_validator(mode="after")
    def require_a_field(self) -> "BulkTaskUpdate":
        if self.status is None and self.priority is None:
            raise ValueError("At least one of status or priority is required")
        return self


class BulkTaskIds(CamelModel):
    task_ids: List[str] = Field(..., min_length=1, max_length=MAX_BULK_IDS)


class BulkTaskUpdateRequest(BulkTaskIds):
    updates: BulkTaskUpdate


class TaskRead(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    user_id: str
    title: str
    description: Optional[str] = None
    status: TaskStatus
    priority: TaskPriority
    due_date: Optional[UTCDateTime] = None
    completed_at: Optional[UTCDateTime] = None
    created_at: UTCDateTime
    updated_at: UTCDateTime


class TaskStats(CamelModel):
    total: int = 0
    pending: int = 0
    in_progress: int = 0
    completed: int = 0
    overdue: int = 0


class DeletedCount(CamelModel):
    deleted_count: int


class ModifiedCount(CamelModel):
    modified_count: int
