import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from ..dependencies.auth import get_current_user
from ..dependencies.services import get_task_service
from ..models.task import TaskPriority, TaskStatus
from ..schemas.common import ApiResponse, PaginationMeta
from ..schemas.task import (
    MAX_PAGE,
    MAX_PAGE_SIZE,
    BulkTaskIds,
    BulkTaskUpdateRequest,
    DeletedCount,
    ModifiedCount,
    TaskCreate,
    TaskPriorityUpdate,
    TaskRead,
    TaskStats,
    TaskStatusUpdate,
    TaskUpdate,
)
from ..schemas.user import AuthenticatedUser
from ..services.tasks import Pagination, TaskFilters, TaskService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=ApiResponse[List[TaskRead]])
def get_tasks(
    status: Optional[TaskStatus] = None,
    priority: Optional[TaskPriority] = None,
    search: Optional[str] = Query(None, min_length=1, max_length=100),
    page: int = Query(1, ge=1, le=MAX_PAGE),
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$"),
    current_user: AuthenticatedUser = Depends(get_current_user),
    task_service: TaskService = Depends(get_task_service),
):
    result = task_service.list(
        current_user.id,
        TaskFilters(status=status, priority=priority, search=search),
        Pagination(page=page, limit=limit, sort_by=sort_by, sort_order=sort_order),
    )
    return ApiResponse(
        data=[TaskRead.model_validate(task) for task in result.items],
        pagination=PaginationMeta(
            page=result.page,
            limit=result.limit,
            total_pages=result.total_pages,
            total_count=result.total_count,
        ),
    )


@router.get("/stats", response_model=ApiResponse[TaskStats])
def get_task_stats(
    current_user: AuthenticatedUser = Depends(get_current_user),
    task_service: TaskService = Depends(get_task_service),
):
    return ApiResponse(data=task_service.stats(current_user.id))


@router.post("", response_model=ApiResponse[TaskRead], status_code=status.HTTP_201_CREATED)
def create_task(
    task: TaskCreate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    task_service: TaskService = Depends(get_task_service),
):
    created = task_service.create(current_user.id, task)
    return ApiResponse(message="Task created successfully", data=TaskRead.model_validate(created))


@router.post("/bulk-delete", response_model=ApiResponse[DeletedCount])
def bulk_delete_tasks(
    payload: BulkTaskIds,
    current_user: AuthenticatedUser = Depends(get_current_user),
    task_service: TaskService = Depends(get_task_service),
):
    deleted = task_service.delete_many(current_user.id, payload.task_ids)
    return ApiResponse(message="Tasks deleted successfully", data=DeletedCount(deleted_count=deleted))


@router.post("/bulk-update", response_model=ApiResponse[ModifiedCount])
def bulk_update_tasks(
    payload: BulkTaskUpdateRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    task_service: TaskService = Depends(get_task_service),
):
    modified = task_service.bulk_update(current_user.id, payload.task_ids, payload.updates)
    return ApiResponse(message="Tasks updated successfully", data=ModifiedCount(modified_count=modified))


@router.get("/{task_id}", response_model=ApiResponse[TaskRead])
def get_task(
    task_id: str,
    current_user: AuthenticatedUser = Depends(get_current_user),
    task_service: TaskService = Depends(get_task_service),
):
    return ApiResponse(data=TaskRead.model_validate(task_service.get(task_id, current_user.id)))


@router.put("/{task_id}", response_model=ApiResponse[TaskRead])
def update_task(
    task_id: str,
    task_update: TaskUpdate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    task_service: TaskService = Depends(get_task_service),
):
    updated = task_service.update(task_id, current_user.id, task_update)
    return ApiResponse(message="Task updated successfully", data=TaskRead.model_validate(updated))


@router.patch("/{task_id}/status", response_model=ApiResponse[TaskRead])
def update_task_status(
    task_id: str,
    payload: TaskStatusUpdate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    task_service: TaskService = Depends(get_task_service),
):
    updated = task_service.update_status(task_id, current_user.id, payload.status)
    return ApiResponse(message="Task status updated successfully", data=TaskRead.model_validate(updated))


@router.patch("/{task_id}/priority", response_model=ApiResponse[TaskRead])
def update_task_priority(
    task_id: str,
    payload: TaskPriorityUpdate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    task_service: TaskService = Depends(get_task_service),
):
    updated = task_service.update_priority(task_id, current_user.id, payload.priority)
    return ApiResponse(message="Task priority updated successfully", data=TaskRead.model_validate(updated))


@router.delete("/{task_id}", response_model=ApiResponse[None])
def delete_task(
    task_id: str,
    current_user: AuthenticatedUser = Depends(get_current_user),
    task_service: TaskService = Depends(get_task_service),
):
    task_service.delete(task_id, current_user.id)
    return ApiResponse(message="Task deleted successfully")
