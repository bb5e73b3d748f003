import unittest

import requests
from fakes import BASE_URL, FakeBackend, sample_tasks

from taskapp.errors import ApiError, NetworkError, ValidationError
from taskapp.models import Task, TaskUpdate
from taskapp.remote import HttpTransport, TasksApi


class TestTasksApi(unittest.TestCase):
    def setUp(self):
        self.backend = FakeBackend(tasks=sample_tasks())
        self.api = TasksApi(HttpTransport(BASE_URL, session=self.backend))

    def test_list_queries(self):
        tasks = self.api.list_all()
        self.assertTrue(all(isinstance(t, Task) for t in tasks))
        self.assertEqual([t.id for t in tasks], ["1", "2"])

        work = self.api.list_by_category("Work")
        self.assertEqual([t.id for t in work], ["1"])
        self.assertEqual(self.backend.calls[-1][2], {"category": "Work"})

        self.assertEqual(self.api.list_completed(), [])
        self.assertEqual(self.backend.calls[-1][1], "tasks/completed-tasks")

    def test_create_posts_json_draft(self):
        created = self.api.create({
            "title": "Gym", "description": "Legs", "due_date": "2025-02-01",
            "priority": "Medium", "category": "Health",
        })
        method, path, _, body, _, _, headers = self.backend.calls[-1]
        self.assertEqual((method, path), ("POST", "tasks/create"))
        self.assertEqual(body["priority"], "Medium")
        self.assertEqual(headers, {"Content-Type": "application/json"})
        self.assertEqual(created["_id"], "101")

    def test_invalid_draft_is_rejected_before_sending(self):
        with self.assertRaises(ValidationError):
            self.api.create({"title": "", "description": "x"})
        self.assertEqual(self.backend.calls, [])

    def test_update_keeps_id_in_path_only(self):
        self.api.update("1", TaskUpdate(title="Final report"))
        method, path, _, body, *_ = self.backend.calls[-1]
        self.assertEqual((method, path), ("PUT", "tasks/1"))
        self.assertEqual(body, {"title": "Final report"})
        self.assertEqual(self.backend.tasks["1"]["title"], "Final report")

    def test_delete_and_missing_task(self):
        self.assertEqual(self.api.delete("2"), {"message": "Task deleted"})
        self.assertNotIn("2", self.backend.tasks)
        with self.assertRaises(ApiError) as ctx:
            self.api.delete("2")
        self.assertEqual(ctx.exception.status, 404)
        self.assertEqual(ctx.exception.message, "Task not found")

    def test_network_failure(self):
        self.backend.fail_next = requests.ConnectionError("offline")
        with self.assertRaises(NetworkError):
            self.api.list_all()
        # the next call goes through again
        self.assertEqual(len(self.api.list_all()), 2)


if __name__ == "__main__":
    unittest.main()
