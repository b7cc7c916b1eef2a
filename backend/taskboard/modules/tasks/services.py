# taskboard/modules/tasks/services.py

from datetime import datetime
from typing import List, Optional

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from taskboard.core.errors import NotFound, Unauthenticated, ValidationError
from taskboard.core.repository import utc_now
from taskboard.core.security import Identity
from taskboard.models.tasks import TaskCreateAPI, TaskUpdateAPI
from .models import TaskCreateInternal, TaskInDB, TaskOwner, TaskStats, TaskUpdateInternal
from .paging import Page, PageRequest
from .policy import ensure_can_read, ensure_can_write, read_scope
from .query import TaskFilters, build_task_query
from .repository import TaskRepository


def _first_error_message(e: PydanticValidationError) -> str:
    errors = e.errors()
    if not errors:
        return str(e)
    # pydantic prefixes wrapped ValueErrors with "Value error, "
    return errors[0]["msg"].removeprefix("Value error, ")


class TaskService:
    """Business rules for tasks: visibility, ownership, listing and statistics."""

    async def list_tasks(
        self,
        identity: Identity,
        task_repo: TaskRepository,
        search_text: Optional[str] = None,
        filters: Optional[TaskFilters] = None,
        page_request: Optional[PageRequest] = None,
    ) -> Page[TaskInDB]:
        page_request = page_request or PageRequest()
        log = logger.bind(service="TaskService", user_id=identity.id)

        predicate = build_task_query(identity, search_text=search_text, filters=filters)
        items, total = await task_repo.find_page(predicate, page_request)
        page = Page(items=items, page=page_request.page, limit=page_request.limit, total=total)
        log.debug(f"Listed {len(items)} of {total} task(s), page {page.page}/{page.pages}")
        return page

    async def list_by_category(
        self,
        identity: Identity,
        category: str,
        task_repo: TaskRepository,
        page_request: Optional[PageRequest] = None,
    ) -> Page[TaskInDB]:
        filters = TaskFilters.from_query(category=category)
        return await self.list_tasks(identity, task_repo, filters=filters, page_request=page_request)

    async def get_task(self, task_id: str, identity: Identity, task_repo: TaskRepository) -> TaskInDB:
        """
        Fetches one task the caller may read.

        Raises NotFound when the id is malformed or unknown, Forbidden when the
        task exists but is private to someone else.
        """
        task = await task_repo.get(task_id)
        if task is None:
            raise NotFound("Task not found")
        ensure_can_read(identity, task)
        return task

    async def create_task(self, task_in: TaskCreateAPI, identity: Identity, task_repo: TaskRepository) -> TaskInDB:
        if not identity.is_authenticated:
            raise Unauthenticated("Not authenticated")
        log = logger.bind(service="TaskService", user_id=identity.id)

        try:
            internal = TaskCreateInternal(
                **task_in.model_dump(),
                owner_id=identity.id,
                owner=TaskOwner.from_identity(identity),
            )
        except PydanticValidationError as e:
            raise ValidationError(_first_error_message(e)) from e

        created = await task_repo.create(internal)
        log.success(f"Task created: {created.id}")
        return created

    async def update_task(
        self,
        task_id: str,
        update_in: TaskUpdateAPI,
        identity: Identity,
        task_repo: TaskRepository,
    ) -> TaskInDB:
        log = logger.bind(service="TaskService", task_id=task_id, user_id=identity.id)
        current = await task_repo.get(task_id)
        if current is None:
            raise NotFound("Task not found")
        ensure_can_write(identity, current)

        try:
            changes = TaskUpdateInternal(**update_in.model_dump(exclude_unset=True))
        except PydanticValidationError as e:
            raise ValidationError(_first_error_message(e)) from e

        updated = await task_repo.update(current.id, changes)
        if updated is None:
            # removed between the read and the write
            raise NotFound("Task not found")
        log.info(f"Task updated, fields: {sorted(changes.model_fields_set)}")
        return updated

    async def delete_task(self, task_id: str, identity: Identity, task_repo: TaskRepository) -> None:
        current = await task_repo.get(task_id)
        if current is None:
            raise NotFound("Task not found")
        ensure_can_write(identity, current)

        if not await task_repo.delete(current.id):
            raise NotFound("Task not found")
        logger.bind(service="TaskService", user_id=identity.id).info(f"Task deleted: {task_id}")

    async def summarize(
        self,
        identity: Identity,
        task_repo: TaskRepository,
        now: Optional[datetime] = None,
    ) -> TaskStats:
        """Counts over the caller's read scope. total == completed + pending always."""
        return await task_repo.summarize(read_scope(identity), now or utc_now())

    async def list_categories(self, identity: Identity, task_repo: TaskRepository) -> List[str]:
        return await task_repo.distinct_categories(read_scope(identity))


# Factory to get service instance
async def get_task_service() -> TaskService:
    return TaskService()
