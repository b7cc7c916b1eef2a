# taskboard/modules/tasks/repository.py

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from bson import ObjectId
from loguru import logger
from pymongo import ASCENDING, DESCENDING

from taskboard.core.config import settings
from taskboard.core.database import get_database
from taskboard.core.repository import BaseRepository, utc_now
from .derived import is_overdue
from .models import TaskCreateInternal, TaskInDB, TaskStats, TaskUpdateInternal
from .paging import PageRequest, SortOrder, sort_tasks
from .predicates import Predicate

COLLECTION_NAME = "tasks"


class TaskRepository(ABC):
    """Storage boundary for tasks. Queries are expressed as predicates."""

    @abstractmethod
    async def get(self, task_id: str | ObjectId) -> Optional[TaskInDB]:
        ...

    @abstractmethod
    async def create(self, data_in: TaskCreateInternal) -> TaskInDB:
        ...

    @abstractmethod
    async def update(self, task_id: str | ObjectId, data_in: TaskUpdateInternal) -> Optional[TaskInDB]:
        ...

    @abstractmethod
    async def delete(self, task_id: str | ObjectId) -> bool:
        ...

    @abstractmethod
    async def find_page(self, predicate: Predicate, page_request: PageRequest) -> Tuple[List[TaskInDB], int]:
        """Returns the requested slice in sort order and the total match count."""

    @abstractmethod
    async def summarize(self, predicate: Predicate, now: datetime) -> TaskStats:
        ...

    @abstractmethod
    async def distinct_categories(self, predicate: Predicate) -> List[str]:
        ...

    async def ping(self) -> bool:
        return True


class MongoTaskRepository(BaseRepository[TaskInDB, TaskCreateInternal, TaskUpdateInternal], TaskRepository):
    model = TaskInDB
    collection_name = COLLECTION_NAME
    protected_fields = ("owner_id", "owner")

    async def create_indexes(self):
        """Creates indexes for the visibility scope, filters and sort fields."""
        try:
            await self.collection.create_index("owner_id")
            await self.collection.create_index("is_public")
            await self.collection.create_index("category")
            await self.collection.create_index("priority")
            await self.collection.create_index("completed")
            await self.collection.create_index([("due_date", ASCENDING)], sparse=True)
            await self.collection.create_index([("created_at", DESCENDING)])
            await self.collection.create_index([("updated_at", DESCENDING)])
            logger.info(f"Indexes created/verified for collection: {self.collection_name}")
        except Exception as e:
            logger.exception(f"Error creating indexes for {self.collection_name}: {e}")

    async def get(self, task_id: str | ObjectId) -> Optional[TaskInDB]:
        return await self.get_by_id(task_id)

    async def find_page(self, predicate: Predicate, page_request: PageRequest) -> Tuple[List[TaskInDB], int]:
        query = predicate.to_mongo()
        direction = DESCENDING if page_request.sort_order is SortOrder.DESC else ASCENDING
        sort = [(page_request.sort_field, direction), ("_id", ASCENDING)]
        logger.debug(f"find_page query={query} sort={sort} skip={page_request.offset} limit={page_request.limit}")

        total = await self.count(query)
        if page_request.offset >= total:
            return [], total
        items = await self.list_by(query=query, skip=page_request.offset, limit=page_request.limit, sort=sort)
        return items, total

    async def summarize(self, predicate: Predicate, now: datetime) -> TaskStats:
        # BSON datetimes are naive UTC
        now_naive = now.astimezone(timezone.utc).replace(tzinfo=None)
        pipeline = [
            {"$match": predicate.to_mongo()},
            {
                "$group": {
                    "_id": None,
                    "total": {"$sum": 1},
                    "completed": {"$sum": {"$cond": [{"$eq": ["$completed", True]}, 1, 0]}},
                    "overdue": {
                        "$sum": {
                            "$cond": [
                                {
                                    "$and": [
                                        {"$eq": ["$completed", False]},
                                        {"$lt": [{"$ifNull": ["$due_date", now_naive]}, now_naive]},
                                    ]
                                },
                                1,
                                0,
                            ]
                        }
                    },
                }
            },
        ]
        try:
            results = await self.collection.aggregate(pipeline).to_list(length=1)
        except Exception as e:
            self._handle_db_exception(e, "summarize")

        if not results:
            return TaskStats()
        row = results[0]
        return TaskStats.from_counts(total=row["total"], completed=row["completed"], overdue=row["overdue"])

    async def distinct_categories(self, predicate: Predicate) -> List[str]:
        try:
            categories = await self.collection.distinct("category", predicate.to_mongo())
        except Exception as e:
            self._handle_db_exception(e, "distinct_categories")
        return sorted(categories)

    async def ping(self) -> bool:
        try:
            await self.db.command("ping")
            return True
        except Exception as e:
            logger.error(f"MongoDB ping failed: {e}")
            return False


class InMemoryTaskRepository(TaskRepository):
    """Process-local store evaluating predicates in Python. Used in tests and local runs."""

    def __init__(self, tasks: Iterable[TaskInDB] = ()):
        self._tasks: Dict[ObjectId, TaskInDB] = {t.id: t.model_copy(deep=True) for t in tasks}
        logger.debug(f"InMemoryTaskRepository initialized with {len(self._tasks)} tasks")

    @staticmethod
    def _key(task_id: str | ObjectId) -> Optional[ObjectId]:
        return BaseRepository._to_objectid(task_id)

    def _select(self, predicate: Predicate) -> List[TaskInDB]:
        return [t for t in self._tasks.values() if predicate.matches(t)]

    async def get(self, task_id: str | ObjectId) -> Optional[TaskInDB]:
        task = self._tasks.get(self._key(task_id))
        return task.model_copy(deep=True) if task else None

    async def create(self, data_in: TaskCreateInternal) -> TaskInDB:
        now = utc_now()
        task = TaskInDB(**data_in.model_dump(), created_at=now, updated_at=now)
        self._tasks[task.id] = task
        logger.info(f"Task created in memory: ID {task.id}")
        return task.model_copy(deep=True)

    async def update(self, task_id: str | ObjectId, data_in: TaskUpdateInternal) -> Optional[TaskInDB]:
        key = self._key(task_id)
        current = self._tasks.get(key)
        if current is None:
            logger.warning(f"Task not found for update: ID {task_id}")
            return None
        changes = data_in.model_dump(exclude_unset=True)
        for field in ("id", "_id", "owner_id", "owner", "created_at"):
            changes.pop(field, None)
        if changes:
            changes["updated_at"] = utc_now()
            current = TaskInDB.model_validate({**current.model_dump(), **changes})
            self._tasks[key] = current
        return current.model_copy(deep=True)

    async def delete(self, task_id: str | ObjectId) -> bool:
        removed = self._tasks.pop(self._key(task_id), None)
        if removed is None:
            logger.warning(f"Task not found for deletion: ID {task_id}")
            return False
        logger.info(f"Task deleted from memory: ID {task_id}")
        return True

    async def find_page(self, predicate: Predicate, page_request: PageRequest) -> Tuple[List[TaskInDB], int]:
        matched = sort_tasks(self._select(predicate), page_request.sort_field, page_request.sort_order)
        start = page_request.offset
        items = matched[start:start + page_request.limit]
        return [t.model_copy(deep=True) for t in items], len(matched)

    async def summarize(self, predicate: Predicate, now: datetime) -> TaskStats:
        matched = self._select(predicate)
        return TaskStats.from_counts(
            total=len(matched),
            completed=sum(1 for t in matched if t.completed),
            overdue=sum(1 for t in matched if is_overdue(t, now)),
        )

    async def distinct_categories(self, predicate: Predicate) -> List[str]:
        return sorted({t.category for t in self._select(predicate)})


_memory_repository: Optional[InMemoryTaskRepository] = None


async def get_task_repository() -> TaskRepository:
    """FastAPI dependency returning the configured task store."""
    global _memory_repository
    if settings.STORE_BACKEND == "memory":
        if _memory_repository is None:
            _memory_repository = InMemoryTaskRepository()
        return _memory_repository
    db = await get_database()
    return MongoTaskRepository(db)
