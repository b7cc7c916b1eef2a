# taskboard/modules/tasks/policy.py

from loguru import logger

from taskboard.core.errors import Forbidden
from taskboard.core.security import Identity
from .models import TaskInDB
from .predicates import FieldEquals, Predicate


def is_owner(identity: Identity, task: TaskInDB) -> bool:
    return identity.is_authenticated and identity.id == task.owner_id


def can_read(identity: Identity, task: TaskInDB) -> bool:
    """Public tasks are readable by anyone; private ones only by their owner."""
    return bool(task.is_public) or is_owner(identity, task)


def can_write(identity: Identity, task: TaskInDB) -> bool:
    """Only the owner may modify or delete. Public visibility never grants write."""
    return is_owner(identity, task)


def ensure_can_read(identity: Identity, task: TaskInDB) -> None:
    if not can_read(identity, task):
        logger.bind(task_id=str(task.id), user_id=identity.id).warning("Read access denied.")
        raise Forbidden("Access denied")


def ensure_can_write(identity: Identity, task: TaskInDB) -> None:
    if not can_write(identity, task):
        logger.bind(task_id=str(task.id), user_id=identity.id).warning("Write access denied.")
        raise Forbidden("Access denied")


def read_scope(identity: Identity) -> Predicate:
    """The set of tasks `identity` may read: its own plus every public task."""
    public = FieldEquals("is_public", True)
    if not identity.is_authenticated:
        return public
    return FieldEquals("owner_id", identity.id) | public
