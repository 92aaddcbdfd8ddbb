from datetime import date

import pytest

from task_api.client import ApiError, Session, TaskClient
from task_api.models import Priority, Status


@pytest.fixture
def api(client):
    return TaskClient(client)


class TestClientSession:
    def test_register_sets_session(self, api):
        session = api.register("Ada", "ada@example.com", "secret123")
        assert session.is_authenticated
        assert session.user["email"] == "ada@example.com"
        assert api.me()["id"] == session.user["id"]

    def test_logout_forgets_token(self, api):
        api.register("Ada", "ada@example.com", "secret123")
        api.logout()
        assert not api.session.is_authenticated
        with pytest.raises(ApiError) as exc:
            api.list_tasks()
        assert exc.value.status_code == 401
        assert exc.value.message == "Not authorized, no token"

        api.login("ada@example.com", "secret123")
        assert api.list_tasks() == []

    def test_session_save_and_load(self, api, tmp_path):
        api.register("Ada", "ada@example.com", "secret123")
        path = tmp_path / "session.json"
        api.session.save(path)

        restored = Session.load(path)
        assert restored == api.session
        assert Session.load(tmp_path / "missing.json") == Session()


class TestClientTasks:
    def test_crud_flow(self, api):
        api.register("Ada", "ada@example.com", "secret123")
        task = api.create_task("Plan trip", priority=Priority.HIGH, due_date=date(2030, 7, 1))
        assert task["priority"] == "High"
        assert task["dueDate"].startswith("2030-07-01")

        updated = api.update_task(task["id"], status=Status.COMPLETED, due_date=None)
        assert updated["status"] == "Completed"
        assert updated["dueDate"] is None

        assert api.get_task(task["id"])["status"] == "Completed"
        assert api.stats()["completed"] == 1
        assert api.delete_task(task["id"]) == "Task deleted successfully"
        with pytest.raises(ApiError) as exc:
            api.get_task(task["id"])
        assert exc.value.status_code == 404

    def test_list_omits_all_sentinel(self, api):
        api.register("Ada", "ada@example.com", "secret123")
        api.create_task("a", status="Completed", priority="Low")
        api.create_task("b", status="Pending", priority="High")
        assert [t["title"] for t in api.list_tasks()] == ["b", "a"]
        assert [t["title"] for t in api.list_tasks(status="Completed")] == ["a"]
        assert [t["title"] for t in api.list_tasks(sort_by="priority")] == ["b", "a"]

    def test_other_users_task_is_forbidden(self, client):
        owner = TaskClient(client)
        owner.register("Ada", "ada@example.com", "secret123")
        task = owner.create_task("mine")

        intruder = TaskClient(client)
        intruder.register("Eve", "eve@example.com", "secret123")
        with pytest.raises(ApiError) as exc:
            intruder.update_task(task["id"], title="stolen")
        assert exc.value.status_code == 403

    def test_unknown_field_rejected_locally(self, api):
        with pytest.raises(TypeError):
            api.create_task("x", owner="someone")

    def test_missing_title_message(self, api):
        api.register("Ada", "ada@example.com", "secret123")
        with pytest.raises(ApiError) as exc:
            api.create_task("")
        assert exc.value.status_code == 400
        assert exc.value.message == "Task title is required"
