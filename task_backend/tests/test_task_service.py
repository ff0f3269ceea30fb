from datetime import date

import pytest

from src.task_api.errors import (
    InvalidDateFormatError,
    MalformedIdentifierError,
    MissingIdentifierError,
    PersistenceError,
    TaskNotFoundError,
    ValidationFailedError,
)
from src.task_api.models import TaskPriority, TaskStatus
from src.task_api.repositories import InMemoryRepository
from src.task_api.schemas import TaskQuery
from src.task_api.seed import SAMPLE_TASKS, seed_sample_tasks
from src.task_api.services import TaskService, resolve_sort

MISSING_UUID = "123e4567-e89b-12d3-a456-426614174000"


class RecordingRepository(InMemoryRepository):
    """In-memory store that records every method the service calls."""

    def __init__(self):
        super().__init__()
        self.calls = []

    def create(self, fields):
        self.calls.append("create")
        return super().create(fields)

    def find_one(self, task_id):
        self.calls.append("find_one")
        return super().find_one(task_id)

    def find_many_and_count(self, criteria, sort, offset, limit):
        self.calls.append(("find_many_and_count", criteria, sort, offset, limit))
        return super().find_many_and_count(criteria, sort, offset, limit)

    def save(self, task):
        self.calls.append("save")
        return super().save(task)

    def remove(self, task):
        self.calls.append("remove")
        return super().remove(task)


class BrokenRepository(InMemoryRepository):
    """Store whose reads and writes fail after `fail_after` count() calls."""

    def __init__(self, fail_after=0):
        super().__init__()
        self.fail_after = fail_after
        self.count_calls = 0

    def count(self, criteria=None):
        self.count_calls += 1
        if self.count_calls > self.fail_after:
            raise ConnectionError("store unavailable")
        return super().count(criteria)

    def find_many_and_count(self, criteria, sort, offset, limit):
        raise ConnectionError("store unavailable")

    def save(self, task):
        raise ConnectionError("store unavailable")


def make(service, **overrides):
    payload = {"name": "Task", "dueDate": "2099-06-01"}
    payload.update(overrides)
    return service.create_task(payload)


class TestCreate:
    def test_create_applies_defaults(self, service):
        task = make(service, name="  Write docs ")
        assert task["name"] == "Write docs"
        assert task["due_date"] == date(2099, 6, 1)
        assert task["status"] is TaskStatus.PENDING
        assert task["priority"] is TaskPriority.NORMAL
        assert task["is_active"] is True
        assert task["created_at"] == task["updated_at"]

    def test_ids_are_unique(self, service):
        ids = {make(service)["id"] for _ in range(20)}
        assert len(ids) == 20

    def test_invalid_date_never_touches_store(self):
        repo = RecordingRepository()
        with pytest.raises(InvalidDateFormatError):
            TaskService(repo).create_task({"name": "x", "dueDate": "invalid-date"})
        assert repo.calls == []

    def test_missing_name_lists_field(self, service):
        with pytest.raises(ValidationFailedError) as exc_info:
            service.create_task({"dueDate": "2099-01-01"})
        assert exc_info.value.fields == ["name"]

    def test_missing_everything_lists_both_fields(self, service):
        with pytest.raises(ValidationFailedError) as exc_info:
            service.create_task({})
        assert sorted(exc_info.value.fields) == ["dueDate", "name"]

    def test_name_too_long(self, service):
        with pytest.raises(ValidationFailedError):
            make(service, name="x" * 256)
        assert make(service, name="x" * 255)["name"] == "x" * 255

    def test_persistence_failure(self):
        with pytest.raises(PersistenceError) as exc_info:
            make(TaskService(BrokenRepository()))
        assert exc_info.value.message == "Failed to create task"
        assert isinstance(exc_info.value.__cause__, ConnectionError)


class TestIdentifierChecks:
    @pytest.mark.parametrize("blank", ["", "   ", None])
    def test_blank_ids_never_reach_store(self, blank):
        repo = RecordingRepository()
        service = TaskService(repo)
        for call in (
            lambda: service.get_task(blank),
            lambda: service.update_task(blank, {"name": "x"}),
            lambda: service.delete_task(blank),
        ):
            with pytest.raises(MissingIdentifierError):
                call()
        assert repo.calls == []

    @pytest.mark.parametrize("bad", ["123", "invalid-id", MISSING_UUID + "0"])
    def test_malformed_ids_never_reach_store(self, bad):
        repo = RecordingRepository()
        service = TaskService(repo)
        for call in (
            lambda: service.get_task(bad),
            lambda: service.update_task(bad, {}),
            lambda: service.delete_task(bad),
        ):
            with pytest.raises(MalformedIdentifierError):
                call()
        assert repo.calls == []

    def test_uppercase_id_finds_task(self, service):
        created = make(service, name="Shout")
        upper = created["id"].upper()
        assert service.get_task(upper) == created
        updated = service.update_task(upper, {"status": "Done"})
        assert updated["id"] == created["id"]
        assert updated["status"] is TaskStatus.DONE
        service.delete_task(upper)
        with pytest.raises(TaskNotFoundError):
            service.get_task(created["id"])


class TestUpdate:
    def test_update_not_found(self, service):
        with pytest.raises(TaskNotFoundError):
            service.update_task(MISSING_UUID, {"status": "Done"})

    def test_update_only_status(self, service):
        created = make(service, name="Keep", priority="Red", isActive=False)
        updated = service.update_task(created["id"], {"status": "Done"})
        assert updated["status"] is TaskStatus.DONE
        for field in ("name", "priority", "due_date", "is_active", "created_at"):
            assert updated[field] == created[field]
        assert updated["updated_at"] >= created["updated_at"]

    def test_update_all_fields(self, service):
        created = make(service)
        updated = service.update_task(
            created["id"],
            {"name": " New ", "dueDate": "2100-02-03", "status": "Paused", "priority": "Yellow", "isActive": False},
        )
        assert updated["name"] == "New"
        assert updated["due_date"] == date(2100, 2, 3)
        assert updated["status"] is TaskStatus.PAUSED
        assert updated["priority"] is TaskPriority.MEDIUM
        assert updated["is_active"] is False

    def test_update_rejects_null_and_unknown(self, service):
        created = make(service)
        with pytest.raises(ValidationFailedError) as exc_info:
            service.update_task(created["id"], {"name": None, "colour": "red"})
        assert sorted(exc_info.value.fields) == ["colour", "name"]

    def test_update_lookup_happens_before_validation(self, service):
        with pytest.raises(TaskNotFoundError):
            service.update_task(MISSING_UUID, {"status": "nope"})

    def test_update_bad_date_keeps_stored_task(self, service):
        created = make(service)
        with pytest.raises(InvalidDateFormatError):
            service.update_task(created["id"], {"name": "Other", "dueDate": "2099-13-45"})
        assert service.get_task(created["id"]) == created


class TestDelete:
    def test_delete_then_get_is_not_found(self, service):
        created = make(service)
        service.delete_task(created["id"])
        with pytest.raises(TaskNotFoundError):
            service.get_task(created["id"])

    def test_delete_missing(self, service):
        with pytest.raises(TaskNotFoundError):
            service.delete_task(MISSING_UUID)


class TestList:
    def test_meta_single_page(self, service):
        make(service)
        make(service)
        meta = service.list_tasks({"page": 1, "limit": 10})["meta"]
        assert meta == {
            "page": 1,
            "limit": 10,
            "total": 2,
            "total_pages": 1,
            "has_next": False,
            "has_prev": False,
        }

    def test_meta_second_page(self, service):
        make(service)
        make(service)
        result = service.list_tasks({"page": 2, "limit": 1})
        assert len(result["data"]) == 1
        assert result["meta"]["total_pages"] == 2
        assert result["meta"]["has_prev"] is True
        assert result["meta"]["has_next"] is False

    def test_empty_collection(self, service):
        meta = service.list_tasks({"page": 3})["meta"]
        assert meta["total"] == 0
        assert meta["total_pages"] == 0
        assert meta["has_next"] is False
        assert meta["has_prev"] is True

    def test_offset_and_limit_passed_to_store(self):
        repo = RecordingRepository()
        TaskService(repo).list_tasks({"page": "3", "limit": "5"})
        _, _, _, offset, limit = repo.calls[-1]
        assert (offset, limit) == (10, 5)

    def test_accepts_validated_query(self, service):
        make(service, status="Done")
        make(service)
        result = service.list_tasks(TaskQuery(status=TaskStatus.DONE))
        assert [t["status"] for t in result["data"]] == [TaskStatus.DONE]

    def test_filters_combine(self, service):
        make(service, name="Alpha", status="Pending", priority="Red")
        make(service, name="alphabet", status="Pending", priority="Blue")
        make(service, name="Beta", status="Done", priority="Red")
        names = [t["name"] for t in service.list_tasks({"status": "Pending", "search": " ALPHA "})["data"]]
        assert sorted(names) == ["Alpha", "alphabet"]
        names = [
            t["name"]
            for t in service.list_tasks({"status": "Pending", "priority": "Red", "search": "alpha"})["data"]
        ]
        assert names == ["Alpha"]

    def test_is_active_string_literals(self, service):
        make(service, isActive=False)
        make(service)
        assert service.list_tasks({"isActive": "false"})["meta"]["total"] == 1
        with pytest.raises(ValidationFailedError):
            service.list_tasks({"isActive": "0"})

    def test_sort_by_priority_desc(self, service):
        for priority in ("Blue", "Red", "Yellow"):
            make(service, priority=priority)
        data = service.list_tasks({"sortBy": "priority", "sortOrder": "DESC"})["data"]
        assert [t["priority"].value for t in data] == ["Blue", "Yellow", "Red"]

    def test_persistence_failure(self):
        with pytest.raises(PersistenceError):
            TaskService(BrokenRepository()).list_tasks()


class TestResolveSort:
    @pytest.mark.parametrize(
        "sort_by,field",
        [("name", "name"), ("dueDate", "due_date"), ("status", "status"),
         ("priority", "priority"), ("createdAt", "created_at")],
    )
    def test_allowed_fields(self, sort_by, field):
        assert resolve_sort(sort_by).field == field

    @pytest.mark.parametrize("sort_by", ["updatedAt", "id", "", None, "NAME"])
    def test_fallback(self, sort_by):
        sort = resolve_sort(sort_by)
        assert sort.field == "created_at"
        assert sort.descending is True


class TestStats:
    def test_empty(self, service):
        assert service.get_stats() == {
            "total": 0, "pending": 0, "in_progress": 0, "done": 0, "paused": 0, "active": 0,
        }

    def test_one_of_each_status(self, service):
        for status in ("Pending", "Done", "In Progress", "Paused"):
            make(service, status=status)
        stats = service.get_stats()
        assert stats["total"] == 4
        for key in ("pending", "done", "in_progress", "paused"):
            assert stats[key] == 1
        assert stats["active"] == 4

    def test_failure_in_any_count_fails_whole_call(self):
        with pytest.raises(PersistenceError) as exc_info:
            TaskService(BrokenRepository(fail_after=3)).get_stats()
        assert exc_info.value.message == "Failed to fetch task statistics"


class TestSeed:
    def test_seed_empty_store(self, service):
        assert seed_sample_tasks(service) == len(SAMPLE_TASKS)
        stats = service.get_stats()
        assert stats["total"] == len(SAMPLE_TASKS)
        assert stats["in_progress"] == 1
        assert stats["done"] == 1

    def test_seed_skips_non_empty_store(self, service):
        make(service)
        assert seed_sample_tasks(service) == 0
        assert service.get_stats()["total"] == 1
