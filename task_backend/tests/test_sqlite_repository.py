from datetime import date
from pathlib import Path

import pytest

from src.task_api.db import SQLiteRepository
from src.task_api.errors import PersistenceError, TaskNotFoundError
from src.task_api.models import TaskPriority, TaskStatus
from src.task_api.repositories import TaskFilter, TaskSort
from src.task_api.services import TaskService


@pytest.fixture
def sqlite_repo(tmp_path: Path) -> SQLiteRepository:
    return SQLiteRepository(str(tmp_path / "nested" / "tasks.db"))


def add(repo, name, status=TaskStatus.PENDING, priority=TaskPriority.NORMAL, is_active=True, due="2099-01-01"):
    return repo.save(
        repo.create(
            {
                "name": name,
                "due_date": date.fromisoformat(due),
                "status": status,
                "priority": priority,
                "is_active": is_active,
            }
        )
    )


def test_save_assigns_id_and_round_trips(sqlite_repo):
    saved = add(sqlite_repo, "A", status=TaskStatus.IN_PROGRESS, priority=TaskPriority.HIGH, is_active=False)
    assert saved["id"]
    assert saved["created_at"] == saved["updated_at"]

    fetched = sqlite_repo.find_one(saved["id"])
    assert fetched == saved
    assert fetched["status"] is TaskStatus.IN_PROGRESS
    assert fetched["due_date"] == date(2099, 1, 1)


def test_save_existing_updates_in_place(sqlite_repo):
    saved = add(sqlite_repo, "A")
    saved["name"] = "B"
    resaved = sqlite_repo.save(saved)
    assert resaved["id"] == saved["id"]
    assert resaved["name"] == "B"
    assert resaved["created_at"] == saved["created_at"]
    assert sqlite_repo.count() == 1


def test_remove(sqlite_repo):
    saved = add(sqlite_repo, "A")
    sqlite_repo.remove(saved)
    assert sqlite_repo.find_one(saved["id"]) is None
    assert sqlite_repo.count() == 0


def test_filters_and_count(sqlite_repo):
    add(sqlite_repo, "Write report", status=TaskStatus.DONE)
    add(sqlite_repo, "write REPORT draft", is_active=False)
    add(sqlite_repo, "Call bank", priority=TaskPriority.HIGH)

    assert sqlite_repo.count(TaskFilter(name_contains="report")) == 2
    assert sqlite_repo.count(TaskFilter(status=TaskStatus.DONE)) == 1
    assert sqlite_repo.count(TaskFilter(is_active=True)) == 2
    assert sqlite_repo.count(TaskFilter(priority=TaskPriority.HIGH, name_contains="bank")) == 1
    assert sqlite_repo.count(TaskFilter(status=TaskStatus.PAUSED)) == 0


def test_search_matches_wildcards_literally(sqlite_repo):
    add(sqlite_repo, "100% done")
    add(sqlite_repo, "1000 done")
    assert sqlite_repo.count(TaskFilter(name_contains="100%")) == 1
    assert sqlite_repo.count(TaskFilter(name_contains="_")) == 0


def test_find_many_sorts_and_slices(sqlite_repo):
    add(sqlite_repo, "c", status=TaskStatus.PAUSED, due="2099-01-03")
    add(sqlite_repo, "a", status=TaskStatus.DONE, due="2099-01-01")
    add(sqlite_repo, "b", status=TaskStatus.PENDING, due="2099-01-02")

    items, total = sqlite_repo.find_many_and_count(TaskFilter(), TaskSort("name", False), 0, 2)
    assert total == 3
    assert [t["name"] for t in items] == ["a", "b"]

    items, _ = sqlite_repo.find_many_and_count(TaskFilter(), TaskSort("status", False), 0, 10)
    assert [t["status"] for t in items] == [TaskStatus.PENDING, TaskStatus.DONE, TaskStatus.PAUSED]

    items, _ = sqlite_repo.find_many_and_count(TaskFilter(), TaskSort("due_date", True), 1, 10)
    assert [t["name"] for t in items] == ["b", "a"]


def test_service_over_sqlite(sqlite_repo):
    service = TaskService(sqlite_repo)
    created = service.create_task({"name": "Persisted", "dueDate": "2099-05-05", "priority": "Yellow"})
    updated = service.update_task(created["id"], {"status": "Done"})
    assert updated["priority"] is TaskPriority.MEDIUM
    assert updated["status"] is TaskStatus.DONE
    assert service.get_stats()["done"] == 1

    service.delete_task(created["id"])
    with pytest.raises(TaskNotFoundError):
        service.get_task(created["id"])


def test_sqlite_errors_become_persistence_errors(sqlite_repo):
    with sqlite_repo._conn("drop table") as conn:
        conn.execute("DROP TABLE tasks")
    with pytest.raises(PersistenceError) as exc_info:
        sqlite_repo.count()
    assert exc_info.value.operation == "count tasks"


def test_search_folds_non_ascii_case(sqlite_repo):
    add(sqlite_repo, "École visit")
    add(sqlite_repo, "Straße works")
    assert sqlite_repo.count(TaskFilter(name_contains="école")) == 1
    assert sqlite_repo.count(TaskFilter(name_contains="ÉCOLE")) == 1
    assert sqlite_repo.count(TaskFilter(name_contains="STRASSE")) == 0
    assert sqlite_repo.count(TaskFilter(name_contains="straße")) == 1

    service = TaskService(sqlite_repo)
    assert service.list_tasks({"search": "école"})["meta"]["total"] == 1


def test_huge_page_is_empty_not_an_error(sqlite_repo):
    add(sqlite_repo, "A")
    result = TaskService(sqlite_repo).list_tasks({"page": str(10**18), "limit": "10"})
    assert result["data"] == []
    assert result["meta"]["total"] == 1
    assert result["meta"]["page"] == 10**18
    assert result["meta"]["has_next"] is False
    assert result["meta"]["has_prev"] is True


def test_uppercase_id_reaches_stored_task(sqlite_repo):
    service = TaskService(sqlite_repo)
    created = service.create_task({"name": "Case", "dueDate": "2099-05-05"})
    upper = created["id"].upper()
    assert service.get_task(upper)["id"] == created["id"]
    assert service.update_task(upper, {"name": "Renamed"})["name"] == "Renamed"
    service.delete_task(upper)
    assert sqlite_repo.count() == 0
