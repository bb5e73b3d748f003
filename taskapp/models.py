"""Pydantic models for the wire payloads exchanged with the task backend."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from taskapp.errors import ValidationError


class TaskPriority(str, Enum):
    """Priority levels accepted by the backend."""
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class User(BaseModel):
    """Authenticated user as returned by signin; every field may be partial."""
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    id: Optional[str] = Field(default=None, validation_alias=AliasChoices("id", "_id"))
    name: Optional[str] = None
    username: Optional[str] = None
    email: Optional[str] = None
    mobile: Optional[str] = None
    image: Optional[str] = None

    def to_storage(self) -> dict[str, Any]:
        """JSON-safe dict used for the durable `user` record."""
        return self.model_dump(mode="json", exclude_none=True)


class Task(BaseModel):
    """Cached snapshot of a task. `_id` and `Completed_task` keep the backend's casing."""
    model_config = ConfigDict(populate_by_name=True, extra="allow", coerce_numbers_to_str=True)

    id: str = Field(alias="_id")
    title: Optional[str] = None
    description: Optional[str] = None
    due_date: Optional[str] = None
    priority: Optional[str] = None
    category: Optional[str] = None
    completed: bool = Field(default=False, alias="Completed_task")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class TaskDraft(BaseModel):
    """Body of the create-task mutation."""
    model_config = ConfigDict(extra="forbid")

    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    due_date: str = Field(min_length=1)
    priority: TaskPriority
    category: str = Field(min_length=1)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class TaskUpdate(BaseModel):
    """Field-level partial update; only fields explicitly set are sent."""
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    title: Optional[str] = None
    description: Optional[str] = None
    due_date: Optional[str] = None
    priority: Optional[TaskPriority] = None
    category: Optional[str] = None
    completed: Optional[bool] = Field(default=None, alias="Completed_task")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


class LoginCredentials(BaseModel):
    """Signin body."""
    model_config = ConfigDict(populate_by_name=True)

    email_or_username: str = Field(alias="emailOrusername", min_length=1)
    password: str = Field(min_length=1)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class Registration(BaseModel):
    """Text fields of the multipart signup form."""
    name: str
    username: str
    mobile: str
    email: str
    password: str


@dataclass
class ImageUpload:
    """Profile picture attached to signup as the `img` file part."""
    content: bytes
    filename: str = "profile.jpg"
    content_type: str = "image/jpeg"


def parse_tasks(payload: Any) -> list[Task]:
    """Validate a task-list response into Task snapshots."""
    if payload is None:
        return []
    if isinstance(payload, dict):
        # tolerate enveloped lists ({"tasks": [...]} / {"data": [...]})
        payload = payload.get("tasks", payload.get("data", []))
    return [Task.model_validate(item) for item in payload or []]


def parse_user(payload: Any) -> User:
    """Extract the user from a signin response, enveloped or bare."""
    if isinstance(payload, dict) and isinstance(payload.get("user"), dict):
        return User.model_validate(payload["user"])
    return User.model_validate(payload or {})


def validate_payload(model_cls: type[BaseModel], data: Any) -> Any:
    """Validate an outgoing payload, raising the client's ValidationError."""
    if isinstance(data, model_cls):
        return data
    try:
        return model_cls.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid {model_cls.__name__}: {exc}") from exc
