import os

import pytest
from fastapi.testclient import TestClient

# Ensure we default to memory backend for tests to avoid filesystem dependencies
os.environ.setdefault("PERSISTENCE_BACKEND", "memory")
os.environ.setdefault("SEED_SAMPLE_DATA", "false")
os.environ.setdefault("LOG_FORMAT", "text")

from src.task_api.main import app  # noqa: E402
from src.task_api.repositories import InMemoryRepository, get_repository  # noqa: E402
from src.task_api.services import TaskService  # noqa: E402


@pytest.fixture
def repo():
    return InMemoryRepository()


@pytest.fixture
def service(repo):
    return TaskService(repo)


@pytest.fixture
def client(repo):
    # Fresh store per test so counts and listings are isolated
    app.dependency_overrides[get_repository] = lambda: repo
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
