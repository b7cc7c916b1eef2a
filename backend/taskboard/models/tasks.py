# taskboard/models/tasks.py

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

from taskboard.modules.tasks.derived import days_until_due, is_overdue
from taskboard.modules.tasks.models import (
    TaskCategory,
    TaskInDB,
    TaskPriority,
    TaskStats,
    clean_description,
    clean_tags,
    clean_title,
    ensure_utc,
)

# camelCase on the wire, snake_case in Python
CAMEL_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- API schemas ---

class TaskOwnerAPI(BaseModel):
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    model_config = CAMEL_CONFIG


class TaskAPI(BaseModel):
    """A task as returned by the API, including the derived fields."""
    id: str
    title: str
    description: Optional[str] = None
    completed: bool
    category: TaskCategory
    priority: TaskPriority
    due_date: Optional[datetime] = None
    tags: List[str] = []
    owner_id: str
    owner: Optional[TaskOwnerAPI] = None
    is_public: bool
    created_at: datetime
    updated_at: datetime
    is_overdue: bool = False
    days_until_due: Optional[int] = None

    model_config = CAMEL_CONFIG

    @classmethod
    def from_db(cls, task: TaskInDB, now: Optional[datetime] = None) -> "TaskAPI":
        return cls(
            id=str(task.id),
            title=task.title,
            description=task.description,
            completed=task.completed,
            category=task.category,
            priority=task.priority,
            due_date=task.due_date,
            tags=list(task.tags),
            owner_id=task.owner_id,
            owner=TaskOwnerAPI(**task.owner.model_dump()) if task.owner else None,
            is_public=task.is_public,
            created_at=task.created_at,
            updated_at=task.updated_at,
            is_overdue=is_overdue(task, now),
            days_until_due=days_until_due(task, now),
        )


class TaskCreateAPI(BaseModel):
    """Payload to create a task. The owner is always the caller."""
    title: str = Field(..., description="1-200 characters after trimming")
    description: Optional[str] = Field(None, description="Up to 1000 characters after trimming")
    completed: bool = False
    category: TaskCategory = TaskCategory.OTHER
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[datetime] = None
    tags: List[str] = Field(default_factory=list, description="Each tag up to 20 characters")
    is_public: bool = False

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        json_schema_extra={
            "example": {
                "title": "Buy milk",
                "description": "Two litres, semi-skimmed",
                "category": "shopping",
                "priority": "low",
                "dueDate": "2025-05-15T18:00:00Z",
                "tags": ["groceries"],
                "isPublic": False,
            }
        },
    )

    @field_validator("title")
    @classmethod
    def check_title(cls, v: str) -> str:
        return clean_title(v)

    @field_validator("description")
    @classmethod
    def check_description(cls, v: Optional[str]) -> Optional[str]:
        return clean_description(v)

    @field_validator("tags")
    @classmethod
    def check_tags(cls, v: List[str]) -> List[str]:
        return clean_tags(v)

    @field_validator("due_date")
    @classmethod
    def check_due_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)


class TaskUpdateAPI(BaseModel):
    """Partial update: only the fields present in the body change."""
    title: Optional[str] = None
    description: Optional[str] = None
    completed: Optional[bool] = None
    category: Optional[TaskCategory] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[datetime] = Field(None, description="null removes the due date")
    tags: Optional[List[str]] = None
    is_public: Optional[bool] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    @field_validator("title", "completed", "category", "priority", "tags", "is_public", mode="before")
    @classmethod
    def reject_null(cls, v: Any, info: ValidationInfo) -> Any:
        if v is None:
            raise ValueError(f"{to_camel(info.field_name)} cannot be null")
        return v

    @field_validator("title")
    @classmethod
    def check_title(cls, v: str) -> str:
        return clean_title(v)

    @field_validator("description")
    @classmethod
    def check_description(cls, v: Optional[str]) -> Optional[str]:
        return clean_description(v)

    @field_validator("tags")
    @classmethod
    def check_tags(cls, v: List[str]) -> List[str]:
        return clean_tags(v)

    @field_validator("due_date")
    @classmethod
    def check_due_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)


class PaginationAPI(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class TaskListAPI(BaseModel):
    items: List[TaskAPI]
    pagination: PaginationAPI


class TaskStatsAPI(BaseModel):
    total: int = Field(..., description="completed + pending")
    completed: int
    pending: int
    overdue: int

    @classmethod
    def from_stats(cls, stats: TaskStats) -> "TaskStatsAPI":
        return cls(**stats.model_dump())
