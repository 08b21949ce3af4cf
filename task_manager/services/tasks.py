"""Ownership-scoped task operations.

Every query built here carries a ``Task.user_id == user_id`` term; a task
owned by someone else is indistinguishable from a missing one.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Type, TypeVar, Union

import pydantic
from sqlalchemy import and_, case, delete, func, literal, update
from sqlmodel import Session, select

from ..errors import NotFoundError, ValidationError, validation_details
from ..models.base import UTCTimestamp, utcnow
from ..models.task import Task, TaskPriority, TaskStatus
from ..schemas.task import (
    MAX_BULK_IDS,
    MAX_PAGE,
    MAX_PAGE_SIZE,
    BulkTaskUpdate,
    TaskCreate,
    TaskStats,
    TaskUpdate,
)

logger = logging.getLogger(__name__)

SchemaT = TypeVar("SchemaT", bound=pydantic.BaseModel)

SORT_FIELDS = {
    "createdAt": Task.created_at,
    "updatedAt": Task.updated_at,
    "dueDate": Task.due_date,
    "title": Task.title,
    "priority": Task.priority,
    "status": Task.status,
}


@dataclass
class TaskFilters:
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    search: Optional[str] = None


@dataclass
class Pagination:
    page: int = 1
    limit: int = 10
    sort_by: str = "createdAt"
    sort_order: str = "desc"


@dataclass
class TaskPage:
    items: List[Task]
    total_count: int
    page: int
    limit: int
    total_pages: int


def _coerce(schema: Type[SchemaT], data: Union[SchemaT, Mapping[str, Any]]) -> SchemaT:
    """Accept an already validated schema or validate a plain mapping into one."""
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data)
    except pydantic.ValidationError as e:
        raise ValidationError("Validation error", details=validation_details(e.errors()))


def _check_ids(task_ids: List[str]) -> List[str]:
    if not task_ids:
        raise ValidationError("At least one task ID is required")
    if len(task_ids) > MAX_BULK_IDS:
        raise ValidationError(f"Cannot operate on more than {MAX_BULK_IDS} tasks at once")
    return list(dict.fromkeys(task_ids))


class TaskService:
    """Task CRUD, bulk operations and statistics for one database session."""

    def __init__(self, session: Session):
        self.session = session

    def list(self, user_id: str, filters: Optional[TaskFilters] = None,
             pagination: Optional[Pagination] = None) -> TaskPage:
        """List a user's tasks, filtered, sorted and paginated.

        Args:
            user_id: Owner whose tasks are listed
            filters: Optional status / priority / search filters (AND-combined)
            pagination: Page number, page size and sort options

        Returns:
            TaskPage with the requested page and totals

        Raises:
            ValidationError: On an out-of-range page, page size or unknown sort field
        """
        filters = filters or TaskFilters()
        pagination = pagination or Pagination()

        if not 1 <= pagination.page <= MAX_PAGE:
            raise ValidationError(f"Page must be between 1 and {MAX_PAGE}")
        if not 1 <= pagination.limit <= MAX_PAGE_SIZE:
            raise ValidationError(f"Limit must be between 1 and {MAX_PAGE_SIZE}")
        sort_column = SORT_FIELDS.get(pagination.sort_by)
        if sort_column is None:
            raise ValidationError(
                f"Cannot sort by '{pagination.sort_by}'. Use one of: {', '.join(SORT_FIELDS)}"
            )
        if pagination.sort_order not in ("asc", "desc"):
            raise ValidationError("Sort order must be 'asc' or 'desc'")

        conditions = [Task.user_id == user_id]
        if filters.status:
            conditions.append(Task.status == TaskStatus(filters.status))
        if filters.priority:
            conditions.append(Task.priority == TaskPriority(filters.priority))
        if filters.search:
            conditions.append(
                Task.title.icontains(filters.search, autoescape=True)
                | Task.description.icontains(filters.search, autoescape=True)
            )

        total_count = self.session.exec(
            select(func.count()).select_from(Task).where(*conditions)
        ).one()

        if pagination.sort_order == "desc":
            order_by = (sort_column.desc(), Task.id.desc())
        else:
            order_by = (sort_column.asc(), Task.id.asc())
        items = self.session.exec(
            select(Task)
            .where(*conditions)
            .order_by(*order_by)
            .offset((pagination.page - 1) * pagination.limit)
            .limit(pagination.limit)
        ).all()

        return TaskPage(
            items=list(items),
            total_count=total_count,
            page=pagination.page,
            limit=pagination.limit,
            total_pages=math.ceil(total_count / pagination.limit),
        )

    def get(self, task_id: str, user_id: str) -> Task:
        task = self.session.exec(
            select(Task).where(Task.id == task_id, Task.user_id == user_id)
        ).first()
        if not task:
            raise NotFoundError("Task not found")
        return task

    def create(self, user_id: str, data: Union[TaskCreate, Mapping[str, Any]]) -> Task:
        """Create a task owned by ``user_id``; any owner in ``data`` is ignored."""
        data = _coerce(TaskCreate, data)
        task = Task(
            user_id=user_id,
            title=data.title,
            description=data.description,
            priority=data.priority,
            due_date=data.due_date,
        )
        task.apply_status(data.status, now=task.created_at)
        self.session.add(task)
        self.session.commit()
        self.session.refresh(task)

        logger.info(f"Created task {task.id} for user {user_id}")
        return task

    def update(self, task_id: str, user_id: str, data: Union[TaskUpdate, Mapping[str, Any]]) -> Task:
        """Apply a partial update; only fields present in ``data`` change."""
        data = _coerce(TaskUpdate, data)
        task = self.get(task_id, user_id)

        changes = data.model_dump(exclude_unset=True)
        now = utcnow()
        status = changes.pop("status", None)
        for field, value in changes.items():
            setattr(task, field, value)
        if status is not None:
            task.apply_status(status, now=now)
        task.updated_at = now

        self.session.add(task)
        self.session.commit()
        self.session.refresh(task)

        logger.info(f"Updated task {task_id} for user {user_id}")
        return task

    def update_status(self, task_id: str, user_id: str, status: Union[TaskStatus, str]) -> Task:
        return self.update(task_id, user_id, {"status": status})

    def update_priority(self, task_id: str, user_id: str, priority: Union[TaskPriority, str]) -> Task:
        return self.update(task_id, user_id, {"priority": priority})

    def delete(self, task_id: str, user_id: str) -> None:
        result = self.session.exec(
            delete(Task).where(Task.id == task_id, Task.user_id == user_id)
        )
        if result.rowcount == 0:
            self.session.rollback()
            raise NotFoundError("Task not found")
        self.session.commit()
        logger.info(f"Deleted task {task_id} for user {user_id}")

    def delete_many(self, user_id: str, task_ids: List[str]) -> int:
        """Delete up to 50 of the user's tasks. Ids of other users' tasks are skipped."""
        task_ids = _check_ids(task_ids)
        result = self.session.exec(
            delete(Task).where(Task.id.in_(task_ids), Task.user_id == user_id)
        )
        self.session.commit()

        deleted = result.rowcount or 0
        logger.info(f"Bulk deleted {deleted} tasks for user {user_id}")
        return deleted

    def bulk_update(self, user_id: str, task_ids: List[str],
                    updates: Union[BulkTaskUpdate, Mapping[str, Any]]) -> int:
        """Set status and/or priority on up to 50 of the user's tasks."""
        task_ids = _check_ids(task_ids)
        updates = _coerce(BulkTaskUpdate, updates)

        now = utcnow()
        values = {"updated_at": now}
        if updates.priority is not None:
            values["priority"] = updates.priority
        if updates.status is not None:
            values["status"] = updates.status
            if updates.status == TaskStatus.COMPLETED:
                values["completed_at"] = func.coalesce(Task.completed_at, literal(now, UTCTimestamp))
            else:
                values["completed_at"] = None

        result = self.session.exec(
            update(Task)
            .where(Task.id.in_(task_ids), Task.user_id == user_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        self.session.commit()

        modified = result.rowcount or 0
        logger.info(f"Bulk updated {modified} tasks for user {user_id}")
        return modified

    def stats(self, user_id: str) -> TaskStats:
        """Aggregate counts for the user's tasks; overdue is evaluated now."""
        now = utcnow()

        def count_where(condition):
            return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)

        row = self.session.exec(
            select(
                func.count(Task.id),
                count_where(Task.status == TaskStatus.PENDING),
                count_where(Task.status == TaskStatus.IN_PROGRESS),
                count_where(Task.status == TaskStatus.COMPLETED),
                count_where(and_(
                    Task.due_date.is_not(None),
                    Task.due_date < now,
                    Task.status != TaskStatus.COMPLETED,
                )),
            ).where(Task.user_id == user_id)
        ).one()

        total, pending, in_progress, completed, overdue = row
        return TaskStats(
            total=total,
            pending=pending,
            in_progress=in_progress,
            completed=completed,
            overdue=overdue,
        )
