"""Test doubles shared by the client and API tests."""

import json as jsonlib
import threading

BASE_URL = "http://backend.test"


class DummyResp:
    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self._body = body
        self.text = "" if body is None else (body if isinstance(body, str) else jsonlib.dumps(body))

    def json(self):
        if isinstance(self._body, str):
            return jsonlib.loads(self._body)
        return self._body


class FakeBackend:
    """In-memory stand-in for requests.Session talking to the task backend."""

    def __init__(self, tasks=None, user=None, password="secret"):
        self.tasks = {str(t["_id"]): dict(t) for t in (tasks or [])}
        self.user = user or {
            "_id": "u1",
            "name": "Ann",
            "username": "ann",
            "email": "ann@example.com",
            "mobile": "5550100",
            "image": "http://img.test/ann.jpg",
        }
        self.password = password
        self.calls = []
        self.fail_next = None  # (status_code, body) or an exception instance
        self.gate = None  # threading.Event blocking GET requests when set
        self._next_id = 100
        self._lock = threading.Lock()

    def count(self, method, path):
        return sum(1 for c in self.calls if c[0] == method and c[1] == path)

    def request(self, method, url, params=None, json=None, data=None, files=None, headers=None, timeout=None):
        path = url.split(BASE_URL + "/", 1)[1]
        with self._lock:
            self.calls.append((method, path, params, json, data, files, headers))
            failure, self.fail_next = self.fail_next, None
        if method == "GET" and self.gate is not None:
            self.gate.wait(5)
        if isinstance(failure, Exception):
            raise failure
        if failure is not None:
            return DummyResp(*failure)
        return self._route(method, path, params, json, data, files)

    def _route(self, method, path, params, body, data, files):
        if method == "POST" and path == "user/signin":
            if body.get("password") != self.password:
                return DummyResp(401, {"message": "Invalid credentials"})
            return DummyResp(200, {"user": self.user, "token": "t0k"})
        if method == "POST" and path == "user/signup":
            return DummyResp(201, {"message": "User registered", "username": files["username"][1]})
        if method == "GET" and path == "tasks":
            items = list(self.tasks.values())
            if params and "category" in params:
                items = [t for t in items if t.get("category") == params["category"]]
            return DummyResp(200, items)
        if method == "GET" and path == "tasks/completed-tasks":
            return DummyResp(200, [t for t in self.tasks.values() if t.get("Completed_task")])
        if method == "POST" and path == "tasks/create":
            with self._lock:
                self._next_id += 1
                task = {"_id": str(self._next_id), "Completed_task": False, **body}
                self.tasks[task["_id"]] = task
            return DummyResp(201, task)
        if path.startswith("tasks/"):
            task_id = path.split("/", 1)[1]
            if task_id not in self.tasks:
                return DummyResp(404, {"message": "Task not found"})
            if method == "PUT":
                self.tasks[task_id].update(body)
                return DummyResp(200, self.tasks[task_id])
            if method == "DELETE":
                self.tasks.pop(task_id)
                return DummyResp(200, {"message": "Task deleted"})
        return DummyResp(404, {"message": "Not found"})


def sample_tasks():
    return [
        {"_id": "1", "title": "Write report", "description": "Q3", "due_date": "2025-01-10",
         "priority": "High", "category": "Work", "Completed_task": False},
        {"_id": "2", "title": "Groceries", "description": "Milk", "due_date": "2025-01-11",
         "priority": "Low", "category": "Home", "Completed_task": False},
    ]
