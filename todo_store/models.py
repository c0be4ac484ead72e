"""Core models for todo-store.

This module defines the core data structures for task management:
- Priority: Enum of priority levels, each with a display name, color and icon
- Category: Enum of task categories, each with a display name and color
- Task: A dataclass representing a single to-do item with a deadline
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from todo_store.errors import ValidationError

DISPLAY_FORMAT = "%d.%m.%Y %H:%M"

_IMMUTABLE_FIELDS = ("id", "created_at")


def _lookup_display_name(enum_cls, name: Optional[str], default):
    if not isinstance(name, str) or not name.strip():
        return default
    key = name.strip().casefold()
    for member in enum_cls:
        if member.display_name.casefold() == key:
            return member
    return default


def _lookup_name(enum_cls, name: Any, default):
    if not isinstance(name, str):
        return default
    return enum_cls.__members__.get(name.strip().upper(), default)


class Priority(Enum):
    """Task priority levels, most pressing first."""

    URGENT = ("Срочно", "#FF4444", "urgent")
    IMPORTANT = ("Важно", "#FFBB33", "important")
    NORMAL = ("Желательно", "#00C851", "normal")

    def __init__(self, display_name: str, color: str, icon_name: str):
        self.display_name = display_name
        self.color = color
        self.icon_name = icon_name

    @classmethod
    def default(cls) -> "Priority":
        """Priority used for new tasks and unrecognized input."""
        return cls.IMPORTANT

    @classmethod
    def from_display_name(cls, name: Optional[str]) -> "Priority":
        """Look up a priority by display name, ignoring case.

        Args:
            name: Display name such as "Срочно"

        Returns:
            Matching Priority, or the default for anything unrecognized
        """
        return _lookup_display_name(cls, name, cls.default())

    @classmethod
    def from_name(cls, name: Any) -> "Priority":
        """Look up a priority by member name ("URGENT"), falling back to the default."""
        return _lookup_name(cls, name, cls.default())


class Category(Enum):
    """Task categories."""

    WORK = ("Работа", "#3D5AFE")
    HOME = ("Дом", "#FF4081")
    STUDY = ("Учёба", "#6200EA")
    OTHER = ("Другое", "#757575")

    def __init__(self, display_name: str, color: str):
        self.display_name = display_name
        self.color = color

    @classmethod
    def default(cls) -> "Category":
        return cls.OTHER

    @classmethod
    def from_display_name(cls, name: Optional[str]) -> "Category":
        """Look up a category by display name, ignoring case; OTHER if unknown."""
        return _lookup_display_name(cls, name, cls.default())

    @classmethod
    def from_name(cls, name: Any) -> "Category":
        return _lookup_name(cls, name, cls.default())


def _now() -> datetime:
    return datetime.now().replace(microsecond=0)


def _new_id() -> str:
    return str(uuid.uuid4())


def _check_datetime(name: str, value: Any) -> datetime:
    if not isinstance(value, datetime):
        raise ValidationError(f"{name} must be a datetime, got {type(value).__name__}")
    if value.tzinfo is not None:
        raise ValidationError(f"{name} must be a naive local datetime")
    return value


def is_overdue(task: "Task", now: Optional[datetime] = None) -> bool:
    """Return True if the task is not completed and its deadline has passed.

    Args:
        task: Task to check
        now: Reference time. Defaults to the current local time.
    """
    if now is None:
        now = datetime.now()
    return not task.completed and now > task.end_time


@dataclass
class Task:
    """Task model representing a single to-do item.

    Attributes:
        title: Non-empty display title
        start_time: When work on the task starts
        end_time: Deadline of the task
        description: Free text, may be empty
        priority: Priority level (IMPORTANT if None)
        category: Category tag (OTHER if None)
        completed: Whether the task is done
        id: Unique identifier, generated on creation and never changed
        created_at: Creation timestamp, never changed
        overdue: Derived flag, refreshed by recompute_overdue()
    """

    title: str
    start_time: datetime
    end_time: datetime
    description: str = ""
    priority: Priority = Priority.IMPORTANT
    category: Category = Category.OTHER
    completed: bool = False
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_now)
    overdue: bool = field(default=False, init=False, compare=False)

    def __post_init__(self):
        if not isinstance(self.id, str) or not self.id.strip():
            raise ValidationError("Task id must be a non-empty string")
        _check_datetime("created_at", self.created_at)
        self.recompute_overdue()

    def __setattr__(self, name: str, value: Any) -> None:
        if name in _IMMUTABLE_FIELDS and name in self.__dict__:
            raise AttributeError(f"Task.{name} cannot be changed after creation")

        if name == "title":
            if not isinstance(value, str) or not value.strip():
                raise ValidationError("Task title must not be empty")
        elif name in ("start_time", "end_time"):
            _check_datetime(name, value)
        elif name == "description":
            value = "" if value is None else str(value)
        elif name == "priority":
            value = Priority.default() if value is None else value
            if not isinstance(value, Priority):
                raise ValidationError(f"priority must be a Priority, got {value!r}")
        elif name == "category":
            value = Category.default() if value is None else value
            if not isinstance(value, Category):
                raise ValidationError(f"category must be a Category, got {value!r}")
        elif name == "completed":
            value = bool(value)

        super().__setattr__(name, value)

        # overdue is first assigned in __post_init__
        if name in ("end_time", "completed") and "overdue" in self.__dict__:
            self.recompute_overdue()

    @classmethod
    def create(
        cls,
        title: str,
        description: str,
        start_time: datetime,
        end_time: datetime,
        priority: Optional[Priority] = None,
        category: Optional[Category] = None,
    ) -> "Task":
        """Create a fresh task with a generated id and created_at.

        Raises:
            ValidationError: If the title is empty or a field has the wrong type
        """
        return cls(
            title=title,
            description=description,
            start_time=start_time,
            end_time=end_time,
            priority=priority,
            category=category,
        )

    @classmethod
    def from_dict(cls, fields: Mapping[str, Any]) -> "Task":
        """Rebuild a task from its persisted fields. See codec.task_from_dict."""
        from todo_store.codec import task_from_dict

        return task_from_dict(fields)

    def to_dict(self) -> Dict[str, Any]:
        """Return the persisted representation of this task."""
        from todo_store.codec import task_to_dict

        return task_to_dict(self)

    def to_json(self) -> str:
        """Serialize this task as a single JSON object."""
        from todo_store.codec import encode_task

        return encode_task(self)

    def mark_completed(self, completed: bool = True) -> None:
        """Set the completion flag. Completing a task always clears overdue."""
        self.completed = completed
        if self.completed:
            self.overdue = False

    def recompute_overdue(self, now: Optional[datetime] = None) -> bool:
        """Refresh the overdue flag against now and return it."""
        self.overdue = is_overdue(self, now)
        return self.overdue

    @property
    def formatted_start_time(self) -> str:
        return self.start_time.strftime(DISPLAY_FORMAT)

    @property
    def formatted_end_time(self) -> str:
        return self.end_time.strftime(DISPLAY_FORMAT)

    def __str__(self) -> str:
        return f"{self.title} [{self.priority.display_name}]"
