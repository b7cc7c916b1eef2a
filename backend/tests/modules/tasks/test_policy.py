# tests/modules/tasks/test_policy.py
import pytest

from conftest import USER_A, USER_B, make_task
from taskboard.core.errors import Forbidden
from taskboard.core.security import ANONYMOUS
from taskboard.modules.tasks.policy import (
    can_read,
    can_write,
    ensure_can_read,
    ensure_can_write,
    read_scope,
)


def test_private_task_is_visible_to_owner_only():
    task = make_task(owner=USER_A, is_public=False)

    assert can_read(USER_A, task)
    assert not can_read(USER_B, task)
    assert not can_read(ANONYMOUS, task)


def test_public_task_is_readable_by_anyone_but_writable_by_owner_only():
    task = make_task(owner=USER_A, is_public=True)

    for caller in (USER_A, USER_B, ANONYMOUS):
        assert can_read(caller, task)
    assert can_write(USER_A, task)
    assert not can_write(USER_B, task)
    assert not can_write(ANONYMOUS, task)


def test_ensure_helpers_raise_forbidden():
    task = make_task(owner=USER_A, is_public=False)

    ensure_can_read(USER_A, task)
    ensure_can_write(USER_A, task)
    with pytest.raises(Forbidden):
        ensure_can_read(USER_B, task)
    with pytest.raises(Forbidden):
        ensure_can_write(USER_B, task)


def test_read_scope_agrees_with_can_read():
    tasks = [
        make_task(owner=USER_A, is_public=False),
        make_task(owner=USER_A, is_public=True),
        make_task(owner=USER_B, is_public=False),
        make_task(owner=USER_B, is_public=True),
    ]
    for caller in (USER_A, USER_B, ANONYMOUS):
        scope = read_scope(caller)
        assert [scope.matches(t) for t in tasks] == [can_read(caller, t) for t in tasks]


def test_anonymous_scope_is_public_only():
    assert read_scope(ANONYMOUS).to_mongo() == {"is_public": True}
    assert read_scope(USER_A).to_mongo() == {"$or": [{"owner_id": "user-a"}, {"is_public": True}]}
