# taskboard/modules/tasks/models.py

from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from taskboard.core.errors import ValidationError
from taskboard.core.repository import utc_now
from taskboard.core.security import Identity

TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 1000
TAG_MAX_LENGTH = 20


class TaskCategory(str, Enum):
    WORK = "work"
    PERSONAL = "personal"
    SHOPPING = "shopping"
    HEALTH = "health"
    EDUCATION = "education"
    OTHER = "other"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


# --- Field rules ---

def parse_category(value: Any) -> TaskCategory:
    try:
        return TaskCategory(value)
    except ValueError:
        allowed = ", ".join(c.value for c in TaskCategory)
        raise ValidationError(f"Invalid category '{value}'. Allowed: {allowed}") from None


def parse_priority(value: Any) -> TaskPriority:
    try:
        return TaskPriority(value)
    except ValueError:
        allowed = ", ".join(p.value for p in TaskPriority)
        raise ValidationError(f"Invalid priority '{value}'. Allowed: {allowed}") from None


def clean_title(value: str) -> str:
    title = (value or "").strip()
    if not title:
        raise ValidationError("Title is required")
    if len(title) > TITLE_MAX_LENGTH:
        raise ValidationError(f"Title must be at most {TITLE_MAX_LENGTH} characters")
    return title


def clean_description(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    description = value.strip()
    if len(description) > DESCRIPTION_MAX_LENGTH:
        raise ValidationError(f"Description must be at most {DESCRIPTION_MAX_LENGTH} characters")
    return description


def clean_tags(values: Optional[List[str]]) -> List[str]:
    tags = []
    for raw in values or []:
        tag = raw.strip()
        if not tag:
            continue
        if len(tag) > TAG_MAX_LENGTH:
            raise ValidationError(f"Tag '{tag}' must be at most {TAG_MAX_LENGTH} characters")
        tags.append(tag)
    return tags


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive datetimes are read as UTC; aware ones are converted to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# --- Internal/DB models ---

class TaskOwner(BaseModel):
    """Display snapshot of the owner, taken from the caller's token at creation."""

    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @classmethod
    def from_identity(cls, identity: Identity) -> "TaskOwner":
        return cls(username=identity.username, first_name=identity.first_name, last_name=identity.last_name)


class TaskCreateInternal(BaseModel):
    title: str
    description: Optional[str] = None
    completed: bool = False
    category: TaskCategory = TaskCategory.OTHER
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[datetime] = None
    tags: List[str] = Field(default_factory=list)
    owner_id: str
    owner: Optional[TaskOwner] = None
    is_public: bool = False

    model_config = ConfigDict(use_enum_values=True, validate_default=True)

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


class TaskUpdateInternal(BaseModel):
    """Partial update; only fields explicitly set are written. Owner never changes."""

    title: Optional[str] = None
    description: Optional[str] = None
    completed: Optional[bool] = None
    category: Optional[TaskCategory] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[datetime] = None
    tags: Optional[List[str]] = None
    is_public: Optional[bool] = None

    model_config = ConfigDict(use_enum_values=True, extra="ignore")

    @field_validator("completed", "category", "priority", "tags", "is_public", mode="before")
    @classmethod
    def reject_null(cls, v: Any, info: ValidationInfo) -> Any:
        if v is None:
            raise ValidationError(f"{info.field_name} cannot be null")
        return v

    @field_validator("title")
    @classmethod
    def check_title(cls, v: Optional[str]) -> str:
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


class TaskInDB(BaseModel):
    id: ObjectId = Field(default_factory=ObjectId, alias="_id")
    title: str
    description: Optional[str] = None
    completed: bool = False
    category: TaskCategory = TaskCategory.OTHER
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[datetime] = None
    tags: List[str] = Field(default_factory=list)
    owner_id: str
    owner: Optional[TaskOwner] = None
    is_public: bool = False
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        use_enum_values=True,
        validate_default=True,
    )

    @field_validator("due_date", "created_at", "updated_at")
    @classmethod
    def as_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)


class TaskStats(BaseModel):
    total: int = 0
    completed: int = 0
    pending: int = 0
    overdue: int = 0

    @classmethod
    def from_counts(cls, total: int, completed: int, overdue: int) -> "TaskStats":
        # pending is derived so that total == completed + pending always holds
        return cls(total=total, completed=completed, pending=total - completed, overdue=overdue)
