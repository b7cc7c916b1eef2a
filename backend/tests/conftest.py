# tests/conftest.py
import os

# Settings are read at import time
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["ALGORITHM"] = "HS256"
os.environ["STORE_BACKEND"] = "memory"
os.environ["LOG_LEVEL"] = "DEBUG"
os.environ["MONGODB_URI"] = "mongodb://localhost:27017/taskboard_test"

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Callable, Dict, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from taskboard.core.security import Identity, create_access_token
from taskboard.modules.tasks.models import TaskInDB
from taskboard.modules.tasks.repository import InMemoryTaskRepository, get_task_repository

USER_A = Identity(id="user-a", username="alice", first_name="Alice", last_name="Andrade")
USER_B = Identity(id="user-b", username="bruno", first_name="Bruno", last_name="Barros")


def make_task(owner: Identity = USER_A, **overrides) -> TaskInDB:
    """Builds a stored task without going through the API."""
    now = datetime.now(timezone.utc)
    data = {
        "title": "Sample task",
        "owner_id": owner.id,
        "created_at": now,
        "updated_at": now,
    }
    data.update(overrides)
    return TaskInDB(**data)


@pytest.fixture
def now() -> datetime:
    return datetime(2025, 5, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def task_repo() -> InMemoryTaskRepository:
    return InMemoryTaskRepository()


@pytest.fixture
def token_for() -> Callable[[Identity], str]:
    def _token(identity: Identity, expires_delta: Optional[timedelta] = None) -> str:
        return create_access_token(
            {
                "sub": identity.id,
                "username": identity.username,
                "first_name": identity.first_name,
                "last_name": identity.last_name,
            },
            expires_delta=expires_delta,
        )

    return _token


@pytest.fixture
def headers_a(token_for) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token_for(USER_A)}"}


@pytest.fixture
def headers_b(token_for) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token_for(USER_B)}"}


@pytest_asyncio.fixture(scope="function")
async def test_client(task_repo: InMemoryTaskRepository) -> AsyncGenerator[AsyncClient, None]:
    from taskboard.main import app

    app.dependency_overrides[get_task_repository] = lambda: task_repo
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        yield client
    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def mongo_db():
    client = AsyncMongoMockClient()
    yield client[f"test_db_{os.urandom(4).hex()}"]
