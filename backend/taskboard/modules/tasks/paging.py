# taskboard/modules/tasks/paging.py

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, List, Optional, Sequence, TypeVar

from taskboard.core.config import settings
from taskboard.core.errors import ValidationError

T = TypeVar("T")

# API name -> stored field name
SORT_FIELDS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "dueDate": "due_date",
    "title": "title",
    "category": "category",
    "priority": "priority",
    "completed": "completed",
}
DEFAULT_SORT_FIELD = "created_at"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


def resolve_sort_field(sort_by: Optional[str]) -> str:
    if not sort_by:
        return DEFAULT_SORT_FIELD
    if sort_by in SORT_FIELDS:
        return SORT_FIELDS[sort_by]
    if sort_by in SORT_FIELDS.values():
        return sort_by
    raise ValidationError(f"Cannot sort by '{sort_by}'. Allowed: {', '.join(SORT_FIELDS)}")


def resolve_sort_order(sort_order: Optional[str]) -> SortOrder:
    if not sort_order:
        return SortOrder.DESC
    try:
        return SortOrder(sort_order.lower())
    except ValueError:
        raise ValidationError(f"Invalid sortOrder '{sort_order}'. Use 'asc' or 'desc'.") from None


def _to_int(raw: Any) -> Optional[int]:
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class PageRequest:
    """
    Ordering and slicing of a listing.

    Out-of-range values are clamped rather than rejected: page < 1 becomes 1,
    limit < 1 (or unparseable) becomes the default page size, and limit is
    capped at MAX_PAGE_SIZE.
    """

    page: int = 1
    limit: int = 20
    sort_field: str = DEFAULT_SORT_FIELD
    sort_order: SortOrder = SortOrder.DESC

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @classmethod
    def from_query(
        cls,
        page: Any = None,
        limit: Any = None,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None,
        default_limit: Optional[int] = None,
        max_limit: Optional[int] = None,
    ) -> "PageRequest":
        max_limit = max_limit or settings.MAX_PAGE_SIZE
        default_limit = min(default_limit or settings.DEFAULT_PAGE_SIZE, max_limit)

        page_number = _to_int(page)
        if page_number is None or page_number < 1:
            page_number = 1

        page_size = _to_int(limit)
        if page_size is None or page_size < 1:
            page_size = default_limit
        page_size = min(page_size, max_limit)

        return cls(
            page=page_number,
            limit=page_size,
            sort_field=resolve_sort_field(sort_by),
            sort_order=resolve_sort_order(sort_order),
        )


def page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit > 0 else 0


@dataclass
class Page(Generic[T]):
    items: List[T]
    page: int
    limit: int
    total: int
    pages: int = field(init=False)

    def __post_init__(self):
        self.pages = page_count(self.total, self.limit)


def _sort_value(value: Any) -> tuple:
    # Missing values order before present ones, as MongoDB sorts null first ascending
    return (value is not None, value)


def sort_tasks(tasks: Sequence[Any], sort_field: str, sort_order: SortOrder) -> List[Any]:
    """Sorts by `sort_field`, ties broken by id ascending."""
    attribute = "id" if sort_field == "_id" else sort_field
    by_id = sorted(tasks, key=lambda t: t.id)
    return sorted(
        by_id,
        key=lambda t: _sort_value(getattr(t, attribute, None)),
        reverse=sort_order is SortOrder.DESC,
    )
