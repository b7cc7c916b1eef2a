# taskboard/modules/tasks/query.py

from dataclasses import dataclass
from typing import Optional

from taskboard.core.errors import ValidationError
from taskboard.core.security import Identity
from .models import TaskCategory, TaskPriority, parse_category, parse_priority
from .policy import read_scope
from .predicates import FieldEquals, Predicate, TextSearch


def parse_completed(raw: Optional[str]) -> Optional[bool]:
    """Maps the `completed` query string to a filter value; empty means no filter."""
    if raw is None or raw == "":
        return None
    value = raw.strip().lower()
    if value == "true":
        return True
    if value == "false":
        return False
    raise ValidationError(f"Invalid completed filter '{raw}'. Use 'true' or 'false'.")


@dataclass(frozen=True)
class TaskFilters:
    """Optional field filters; every one supplied narrows the result."""

    category: Optional[TaskCategory] = None
    priority: Optional[TaskPriority] = None
    completed: Optional[bool] = None

    @classmethod
    def from_query(
        cls,
        category: Optional[str] = None,
        priority: Optional[str] = None,
        completed: Optional[str] = None,
    ) -> "TaskFilters":
        return cls(
            category=parse_category(category) if category else None,
            priority=parse_priority(priority) if priority else None,
            completed=parse_completed(completed),
        )


def build_task_query(
    identity: Identity,
    search_text: Optional[str] = None,
    filters: Optional[TaskFilters] = None,
) -> Predicate:
    """Visibility scope AND optional text search AND optional field filters."""
    filters = filters or TaskFilters()
    predicate = read_scope(identity)

    if search_text and search_text.strip():
        predicate = predicate & TextSearch.from_text(search_text)
    if filters.category is not None:
        predicate = predicate & FieldEquals("category", parse_category(filters.category).value)
    if filters.priority is not None:
        predicate = predicate & FieldEquals("priority", parse_priority(filters.priority).value)
    if filters.completed is not None:
        predicate = predicate & FieldEquals("completed", filters.completed)
    return predicate
