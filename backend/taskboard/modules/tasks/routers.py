# taskboard/modules/tasks/routers.py

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from loguru import logger

from taskboard.core.errors import TaskboardError
from taskboard.core.repository import utc_now
from taskboard.core.security import CurrentIdentity, OptionalIdentity
from taskboard.models.api_common import DetailResponse, StatusResponse
from taskboard.models.tasks import (
    PaginationAPI,
    TaskAPI,
    TaskCreateAPI,
    TaskListAPI,
    TaskStatsAPI,
    TaskUpdateAPI,
)
from .models import TaskInDB
from .paging import Page, PageRequest
from .query import TaskFilters
from .repository import TaskRepository, get_task_repository
from .services import TaskService, get_task_service

router = APIRouter()

ERROR_RESPONSES = {
    status.HTTP_401_UNAUTHORIZED: {"model": DetailResponse},
    status.HTTP_403_FORBIDDEN: {"model": DetailResponse},
    status.HTTP_404_NOT_FOUND: {"model": DetailResponse},
}


def _to_list_api(page: Page[TaskInDB]) -> TaskListAPI:
    now = utc_now()
    return TaskListAPI(
        items=[TaskAPI.from_db(task, now) for task in page.items],
        pagination=PaginationAPI(page=page.page, limit=page.limit, total=page.total, pages=page.pages),
    )


@router.get(
    "",
    response_model=TaskListAPI,
    summary="List visible tasks",
    tags=["Tasks"],
)
async def list_tasks_endpoint(
    identity: OptionalIdentity,
    q: Optional[str] = Query(None, description="Search text; matches any token in title, description or tags"),
    category: Optional[str] = Query(None),
    priority: Optional[str] = Query(None),
    completed: Optional[str] = Query(None, description="'true' or 'false'"),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: Optional[str] = Query(None, alias="sortOrder"),
    limit: Optional[str] = Query(None),
    page: Optional[str] = Query(None),
    task_service: TaskService = Depends(get_task_service),
    task_repo: TaskRepository = Depends(get_task_repository),
):
    """
    Lists the caller's own tasks plus every public task. Anonymous callers
    see public tasks only. Supports search, filters, sorting and paging.
    """
    log = logger.bind(user_id=identity.id, api_endpoint="GET /tasks")
    try:
        filters = TaskFilters.from_query(category=category, priority=priority, completed=completed)
        page_request = PageRequest.from_query(page=page, limit=limit, sort_by=sort_by, sort_order=sort_order)
        result = await task_service.list_tasks(
            identity, task_repo, search_text=q, filters=filters, page_request=page_request
        )
        return _to_list_api(result)
    except TaskboardError:
        raise
    except Exception as e:
        log.exception(f"Unexpected error listing tasks: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error listing tasks.")


@router.get(
    "/stats/summary",
    response_model=TaskStatsAPI,
    summary="Task counts over the caller's visible tasks",
    tags=["Tasks"],
    responses={status.HTTP_401_UNAUTHORIZED: {"model": DetailResponse}},
)
async def task_stats_endpoint(
    identity: CurrentIdentity,
    task_service: TaskService = Depends(get_task_service),
    task_repo: TaskRepository = Depends(get_task_repository),
):
    log = logger.bind(user_id=identity.id, api_endpoint="GET /tasks/stats/summary")
    try:
        stats = await task_service.summarize(identity, task_repo)
        return TaskStatsAPI.from_stats(stats)
    except TaskboardError:
        raise
    except Exception as e:
        log.exception(f"Unexpected error computing task stats: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error computing stats.")


@router.get(
    "/categories/list",
    response_model=List[str],
    summary="Categories present among the caller's visible tasks",
    tags=["Tasks"],
    responses={status.HTTP_401_UNAUTHORIZED: {"model": DetailResponse}},
)
async def list_categories_endpoint(
    identity: CurrentIdentity,
    task_service: TaskService = Depends(get_task_service),
    task_repo: TaskRepository = Depends(get_task_repository),
):
    log = logger.bind(user_id=identity.id, api_endpoint="GET /tasks/categories/list")
    try:
        return await task_service.list_categories(identity, task_repo)
    except TaskboardError:
        raise
    except Exception as e:
        log.exception(f"Unexpected error listing categories: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error listing categories.")


@router.get(
    "/categories/{category}",
    response_model=TaskListAPI,
    summary="List visible tasks in one category",
    tags=["Tasks"],
    responses={status.HTTP_401_UNAUTHORIZED: {"model": DetailResponse}},
)
async def list_tasks_by_category_endpoint(
    category: str,
    identity: CurrentIdentity,
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: Optional[str] = Query(None, alias="sortOrder"),
    limit: Optional[str] = Query(None),
    page: Optional[str] = Query(None),
    task_service: TaskService = Depends(get_task_service),
    task_repo: TaskRepository = Depends(get_task_repository),
):
    log = logger.bind(user_id=identity.id, category=category)
    try:
        page_request = PageRequest.from_query(page=page, limit=limit, sort_by=sort_by, sort_order=sort_order)
        result = await task_service.list_by_category(identity, category, task_repo, page_request=page_request)
        return _to_list_api(result)
    except TaskboardError:
        raise
    except Exception as e:
        log.exception(f"Unexpected error listing tasks by category: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error listing tasks.")


@router.get(
    "/{task_id}",
    response_model=TaskAPI,
    summary="Get one task",
    tags=["Tasks"],
    responses=ERROR_RESPONSES,
)
async def get_task_endpoint(
    task_id: str,
    identity: OptionalIdentity,
    task_service: TaskService = Depends(get_task_service),
    task_repo: TaskRepository = Depends(get_task_repository),
):
    log = logger.bind(task_id=task_id, user_id=identity.id)
    try:
        task = await task_service.get_task(task_id, identity, task_repo)
        return TaskAPI.from_db(task)
    except TaskboardError:
        raise
    except Exception as e:
        log.exception(f"Unexpected error fetching task: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error fetching task.")


@router.post(
    "",
    response_model=TaskAPI,
    status_code=status.HTTP_201_CREATED,
    summary="Create a task owned by the caller",
    tags=["Tasks"],
    responses={status.HTTP_401_UNAUTHORIZED: {"model": DetailResponse}},
)
async def create_task_endpoint(
    task_in: TaskCreateAPI,
    identity: CurrentIdentity,
    task_service: TaskService = Depends(get_task_service),
    task_repo: TaskRepository = Depends(get_task_repository),
):
    log = logger.bind(user_id=identity.id, api_endpoint="POST /tasks")
    log.info("Endpoint: Creating new task...")
    try:
        created = await task_service.create_task(task_in, identity, task_repo)
        return TaskAPI.from_db(created)
    except TaskboardError as e:
        log.warning(f"Failed to create task: {e.message} (Status: {e.status_code})")
        raise
    except Exception as e:
        log.exception(f"Unexpected error creating task: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error creating task.")


@router.put(
    "/{task_id}",
    response_model=TaskAPI,
    summary="Update a task (owner only)",
    tags=["Tasks"],
    responses=ERROR_RESPONSES,
)
async def update_task_endpoint(
    task_id: str,
    update_in: TaskUpdateAPI,
    identity: CurrentIdentity,
    task_service: TaskService = Depends(get_task_service),
    task_repo: TaskRepository = Depends(get_task_repository),
):
    """Only the fields present in the body are changed. The owner can never change."""
    log = logger.bind(task_id=task_id, user_id=identity.id)
    try:
        updated = await task_service.update_task(task_id, update_in, identity, task_repo)
        return TaskAPI.from_db(updated)
    except TaskboardError as e:
        log.warning(f"Failed to update task: {e.message} (Status: {e.status_code})")
        raise
    except Exception as e:
        log.exception(f"Unexpected error updating task: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error updating task.")


@router.delete(
    "/{task_id}",
    response_model=StatusResponse,
    summary="Delete a task (owner only)",
    tags=["Tasks"],
    responses=ERROR_RESPONSES,
)
async def delete_task_endpoint(
    task_id: str,
    identity: CurrentIdentity,
    task_service: TaskService = Depends(get_task_service),
    task_repo: TaskRepository = Depends(get_task_repository),
):
    log = logger.bind(task_id=task_id, user_id=identity.id)
    try:
        await task_service.delete_task(task_id, identity, task_repo)
        return StatusResponse(status="deleted", message="Task deleted successfully")
    except TaskboardError as e:
        log.warning(f"Failed to delete task: {e.message} (Status: {e.status_code})")
        raise
    except Exception as e:
        log.exception(f"Unexpected error deleting task: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error deleting task.")
