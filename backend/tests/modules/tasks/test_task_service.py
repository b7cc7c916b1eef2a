# tests/modules/tasks/test_task_service.py
import math
from datetime import timedelta

import pytest

from conftest import USER_A, USER_B, make_task
from taskboard.core.errors import Forbidden, NotFound, Unauthenticated, ValidationError
from taskboard.core.security import ANONYMOUS
from taskboard.models.tasks import TaskCreateAPI, TaskUpdateAPI
from taskboard.modules.tasks.models import TaskOwner
from taskboard.modules.tasks.paging import PageRequest, SortOrder
from taskboard.modules.tasks.query import TaskFilters
from taskboard.modules.tasks.repository import InMemoryTaskRepository
from taskboard.modules.tasks.services import TaskService

pytestmark = pytest.mark.asyncio


@pytest.fixture
def service() -> TaskService:
    return TaskService()


@pytest.fixture
def seeded_repo(now) -> InMemoryTaskRepository:
    tasks = [
        make_task(USER_A, title="A private open", due_date=now - timedelta(days=1)),
        make_task(USER_A, title="A private done", completed=True, due_date=now - timedelta(days=1)),
        make_task(USER_A, title="A public", is_public=True, category="work"),
        make_task(USER_B, title="B private", category="health", due_date=now - timedelta(days=2)),
        make_task(USER_B, title="B public", is_public=True, category="shopping", due_date=now - timedelta(hours=1)),
    ]
    return InMemoryTaskRepository(tasks)


async def test_summary_invariant_holds_for_every_caller(service, seeded_repo, now):
    for caller in (USER_A, USER_B, ANONYMOUS):
        stats = await service.summarize(caller, seeded_repo, now=now)
        assert stats.total == stats.completed + stats.pending


async def test_summary_counts_the_read_scope(service, seeded_repo, now):
    stats = await service.summarize(USER_A, seeded_repo, now=now)

    # own three plus B's public one
    assert stats.total == 4
    assert stats.completed == 1
    assert stats.pending == 3
    # A's open overdue task plus B's public overdue one; completed tasks never count
    assert stats.overdue == 2


async def test_summary_of_empty_scope_is_zero(service, now):
    stats = await service.summarize(USER_A, InMemoryTaskRepository(), now=now)
    assert stats.model_dump() == {"total": 0, "completed": 0, "pending": 0, "overdue": 0}


async def test_list_never_surfaces_someone_elses_private_task(service, seeded_repo):
    page = await service.list_tasks(USER_B, seeded_repo, page_request=PageRequest(limit=100))
    titles = {t.title for t in page.items}

    assert titles == {"A public", "B private", "B public"}


async def test_anonymous_list_is_public_only(service, seeded_repo):
    page = await service.list_tasks(ANONYMOUS, seeded_repo)
    assert {t.title for t in page.items} == {"A public", "B public"}


async def test_pages_reproduce_the_full_result_in_order(service):
    tasks = [make_task(USER_A, title=f"task {i:02d}", priority=("low", "high")[i % 2]) for i in range(23)]
    repo = InMemoryTaskRepository(tasks)
    limit = 5

    first = await service.list_tasks(
        USER_A, repo, page_request=PageRequest(page=1, limit=limit, sort_field="priority", sort_order=SortOrder.ASC)
    )
    assert first.total == 23
    assert first.pages == math.ceil(23 / limit)

    collected = []
    for page_number in range(1, first.pages + 1):
        page = await service.list_tasks(
            USER_A,
            repo,
            page_request=PageRequest(page=page_number, limit=limit, sort_field="priority", sort_order=SortOrder.ASC),
        )
        collected.extend(page.items)

    assert len(collected) == 23
    assert len({t.id for t in collected}) == 23
    keys = [(t.priority, t.id) for t in collected]
    assert keys == sorted(keys)


async def test_offset_past_the_end_returns_empty_page(service):
    repo = InMemoryTaskRepository([make_task(USER_A, title=f"t{i}") for i in range(10)])

    page = await service.list_tasks(USER_A, repo, page_request=PageRequest(page=5, limit=20))

    assert page.items == []
    assert page.total == 10
    assert page.pages == 1


async def test_list_with_search_and_filters(service, seeded_repo):
    page = await service.list_tasks(
        USER_A, seeded_repo, search_text="public", filters=TaskFilters(completed=False)
    )
    assert {t.title for t in page.items} == {"A public", "B public"}


async def test_get_distinguishes_absent_and_forbidden(service, seeded_repo):
    private_b = next(t for t in seeded_repo._tasks.values() if t.title == "B private")

    assert (await service.get_task(str(private_b.id), USER_B, seeded_repo)).title == "B private"
    with pytest.raises(Forbidden):
        await service.get_task(str(private_b.id), USER_A, seeded_repo)
    with pytest.raises(NotFound):
        await service.get_task("0123456789abcdef01234567", USER_A, seeded_repo)
    with pytest.raises(NotFound):
        await service.get_task("not-an-id", USER_A, seeded_repo)


async def test_create_sets_owner_from_caller(service, task_repo):
    created = await service.create_task(TaskCreateAPI(title="Buy milk", category="shopping"), USER_A, task_repo)

    assert created.owner_id == "user-a"
    assert created.owner == TaskOwner(username="alice", first_name="Alice", last_name="Andrade")
    assert created.is_public is False
    assert created.category == "shopping"


async def test_create_requires_an_authenticated_caller(service, task_repo):
    with pytest.raises(Unauthenticated):
        await service.create_task(TaskCreateAPI(title="Buy milk"), ANONYMOUS, task_repo)


async def test_update_is_partial_and_owner_only(service, task_repo):
    created = await service.create_task(
        TaskCreateAPI(title="Buy milk", description="two litres", is_public=True), USER_A, task_repo
    )

    updated = await service.update_task(
        str(created.id), TaskUpdateAPI.model_validate({"completed": True}), USER_A, task_repo
    )
    assert updated.completed is True
    assert updated.description == "two litres"
    assert updated.owner_id == "user-a"
    assert updated.created_at == created.created_at

    with pytest.raises(Forbidden):
        await service.update_task(str(created.id), TaskUpdateAPI(title="mine now"), USER_B, task_repo)
    with pytest.raises(Forbidden):
        await service.update_task(str(created.id), TaskUpdateAPI(title="mine now"), ANONYMOUS, task_repo)
    with pytest.raises(NotFound):
        await service.update_task("0123456789abcdef01234567", TaskUpdateAPI(title="x"), USER_A, task_repo)


async def test_delete_is_owner_only(service, task_repo):
    created = await service.create_task(TaskCreateAPI(title="Buy milk", is_public=True), USER_A, task_repo)

    with pytest.raises(Forbidden):
        await service.delete_task(str(created.id), USER_B, task_repo)
    await service.delete_task(str(created.id), USER_A, task_repo)
    with pytest.raises(NotFound):
        await service.delete_task(str(created.id), USER_A, task_repo)


async def test_categories_are_distinct_and_scoped(service, seeded_repo):
    assert await service.list_categories(USER_A, seeded_repo) == ["other", "shopping", "work"]
    assert await service.list_categories(ANONYMOUS, seeded_repo) == ["shopping", "work"]


async def test_list_by_category_validates_the_category(service, seeded_repo):
    page = await service.list_by_category(USER_B, "health", seeded_repo)
    assert [t.title for t in page.items] == ["B private"]

    with pytest.raises(ValidationError):
        await service.list_by_category(USER_B, "groceries", seeded_repo)
