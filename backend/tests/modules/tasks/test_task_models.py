# tests/modules/tasks/test_task_models.py
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError as PydanticValidationError

from conftest import make_task
from taskboard.core.errors import ValidationError
from taskboard.models.tasks import TaskAPI, TaskCreateAPI, TaskUpdateAPI
from taskboard.modules.tasks.derived import days_until_due, is_overdue
from taskboard.modules.tasks.models import (
    TaskCategory,
    TaskCreateInternal,
    TaskStats,
    clean_tags,
    clean_title,
    parse_category,
    parse_priority,
)


def test_title_is_trimmed_and_bounded():
    assert clean_title("  Buy milk  ") == "Buy milk"
    assert clean_title("x" * 200) == "x" * 200
    with pytest.raises(ValidationError):
        clean_title("   ")
    with pytest.raises(ValidationError):
        clean_title("x" * 201)


def test_tags_drop_blanks_and_bound_each_entry():
    assert clean_tags([" home ", "", "  ", "errands"]) == ["home", "errands"]
    with pytest.raises(ValidationError):
        clean_tags(["x" * 21])


def test_unknown_enum_members_raise_validation_error():
    assert parse_category("shopping") is TaskCategory.SHOPPING
    with pytest.raises(ValidationError, match="Invalid category"):
        parse_category("groceries")
    with pytest.raises(ValidationError, match="Invalid priority"):
        parse_priority("critical")


def test_create_payload_defaults_and_camel_case():
    payload = TaskCreateAPI.model_validate(
        {"title": " Buy milk ", "category": "shopping", "isPublic": True, "dueDate": "2025-05-15T18:00:00"}
    )
    assert payload.title == "Buy milk"
    assert payload.priority.value == "medium"
    assert payload.completed is False
    assert payload.is_public is True
    # naive input is read as UTC
    assert payload.due_date == datetime(2025, 5, 15, 18, 0, tzinfo=timezone.utc)


def test_create_payload_rejects_bad_fields():
    with pytest.raises(PydanticValidationError):
        TaskCreateAPI.model_validate({"title": "ok", "category": "groceries"})
    with pytest.raises(PydanticValidationError):
        TaskCreateAPI.model_validate({"title": "ok", "description": "x" * 1001})


def test_create_payload_ignores_owner_id():
    payload = TaskCreateAPI.model_validate({"title": "Mine", "ownerId": "someone-else"})
    assert "owner_id" not in payload.model_dump()


def test_update_payload_tracks_only_sent_fields():
    update = TaskUpdateAPI.model_validate({"completed": True, "dueDate": None})
    assert update.model_dump(exclude_unset=True) == {"completed": True, "due_date": None}


def test_update_payload_rejects_null_for_required_fields():
    with pytest.raises(PydanticValidationError, match="completed cannot be null"):
        TaskUpdateAPI.model_validate({"completed": None})


def test_internal_model_stores_enum_values():
    task = TaskCreateInternal(title="t", category="work", owner_id="user-a")
    assert task.model_dump()["category"] == "work"


def test_overdue_requires_past_due_date_and_open_task(now):
    assert not is_overdue(make_task(), now)
    assert not is_overdue(make_task(due_date=now + timedelta(hours=1)), now)
    assert is_overdue(make_task(due_date=now - timedelta(seconds=1)), now)
    assert not is_overdue(make_task(due_date=now - timedelta(days=3), completed=True), now)


def test_overdue_is_monotone_in_time(now):
    task = make_task(due_date=now - timedelta(minutes=1))
    for hours in (0, 1, 24, 24 * 365):
        assert is_overdue(task, now + timedelta(hours=hours))
    completed = task.model_copy(update={"completed": True})
    assert not is_overdue(completed, now)


def test_days_until_due_rounds_up(now):
    assert days_until_due(make_task(), now) is None
    assert days_until_due(make_task(due_date=now + timedelta(hours=1)), now) == 1
    assert days_until_due(make_task(due_date=now + timedelta(days=2)), now) == 2
    assert days_until_due(make_task(due_date=now - timedelta(hours=36)), now) == -1


def test_task_api_serializes_camel_case_with_derived_fields(now):
    task = make_task(title="Pay rent", due_date=now - timedelta(days=1), is_public=True)

    body = TaskAPI.from_db(task, now).model_dump(by_alias=True)

    assert body["id"] == str(task.id)
    assert body["ownerId"] == "user-a"
    assert body["isPublic"] is True
    assert body["isOverdue"] is True
    assert body["daysUntilDue"] == -1
    assert "owner_id" not in body


def test_stats_pending_is_derived_from_total():
    stats = TaskStats.from_counts(total=5, completed=2, overdue=1)
    assert stats.pending == 3
    assert stats.total == stats.completed + stats.pending
