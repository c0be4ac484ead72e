"""JSON codec for persisted tasks.

Converts between Task objects and the text stored in the tasks file, a JSON
array of task objects with camelCase keys. Decoding is tolerant per task:
an object with a missing or unparseable required field is skipped with a
warning, and the remaining tasks are still returned.
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from todo_store.errors import FieldError, ParseError, ValidationError
from todo_store.models import Category, Priority, Task

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("id", "title", "startTime", "endTime")


def format_datetime(value: datetime) -> str:
    """Format a timestamp as yyyy-MM-ddTHH:mm:ss, with a zero-padded year."""
    return value.isoformat(timespec="seconds")


def parse_datetime(raw: Any, field: str = "timestamp") -> datetime:
    """Parse a persisted timestamp.

    Accepts yyyy-MM-ddTHH:mm:ss with optional fractional seconds, and a
    bare yyyy-MM-dd date which is read as midnight.

    Args:
        raw: Value read from the JSON object
        field: Field name used in error messages

    Returns:
        Naive local datetime

    Raises:
        FieldError: If the value is missing, not a string, not a valid
                    timestamp or carries a UTC offset
    """
    if not isinstance(raw, str) or not raw.strip():
        raise FieldError(f"{field} is missing or not a string", field)
    try:
        value = datetime.fromisoformat(raw.strip())
    except ValueError as exc:
        raise FieldError(f"{field} is not a valid timestamp: {raw!r}", field) from exc
    if value.tzinfo is not None:
        raise FieldError(f"{field} must not carry a UTC offset: {raw!r}", field)
    return value


def _parse_bool(raw: Any, field: str) -> bool:
    if raw is None:
        return False
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str) and raw.strip().lower() in ("true", "false"):
        return raw.strip().lower() == "true"
    raise FieldError(f"{field} must be true or false, got {raw!r}", field)


def task_to_dict(task: Task) -> Dict[str, Any]:
    """Convert a task to its persisted JSON object."""
    return {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "startTime": format_datetime(task.start_time),
        "endTime": format_datetime(task.end_time),
        "priority": task.priority.name,
        "category": task.category.name,
        "completed": task.completed,
        "overdue": task.overdue,
        "createdAt": format_datetime(task.created_at),
    }


def task_from_dict(fields: Mapping[str, Any]) -> Task:
    """Rebuild a task from a persisted JSON object.

    Unknown keys are ignored. Unknown priority or category names fall back
    to the enum defaults. The stored overdue flag is ignored and recomputed.

    Raises:
        FieldError: If a required field is missing or unparseable, or the
                    resulting task fails validation
    """
    if not isinstance(fields, Mapping):
        raise FieldError(f"task entry must be an object, got {type(fields).__name__}")

    missing = [name for name in REQUIRED_FIELDS if fields.get(name) is None]
    if missing:
        raise FieldError(f"missing required field(s): {', '.join(missing)}", missing[0])

    task_id = fields["id"]
    if not isinstance(task_id, str) or not task_id.strip():
        raise FieldError(f"id must be a non-empty string, got {task_id!r}", "id")

    title = fields["title"]
    if not isinstance(title, str):
        raise FieldError(f"title must be a string, got {title!r}", "title")

    description = fields.get("description")
    extra: Dict[str, Any] = {}
    if fields.get("createdAt") is not None:
        extra["created_at"] = parse_datetime(fields["createdAt"], "createdAt")

    try:
        return Task(
            id=task_id,
            title=title,
            description="" if description is None else str(description),
            start_time=parse_datetime(fields["startTime"], "startTime"),
            end_time=parse_datetime(fields["endTime"], "endTime"),
            priority=Priority.from_name(fields.get("priority")),
            category=Category.from_name(fields.get("category")),
            completed=_parse_bool(fields.get("completed"), "completed"),
            **extra,
        )
    except ValidationError as exc:
        raise FieldError(f"task {task_id!r} is invalid: {exc}") from exc


def encode_task(task: Task) -> str:
    """Serialize one task as a compact JSON object."""
    return json.dumps(task_to_dict(task), ensure_ascii=False)


def encode(tasks: Iterable[Task]) -> str:
    """Serialize tasks as a JSON array, preserving order.

    An empty sequence always encodes to "[]".
    """
    items = [task_to_dict(task) for task in tasks]
    if not items:
        return "[]"
    return json.dumps(items, ensure_ascii=False, indent=2)


def decode(text: Optional[str]) -> List[Task]:
    """Parse the text of a tasks file.

    Empty or whitespace-only text means no data yet and yields an empty
    list. A bare top-level object is accepted as a one-task array.

    Args:
        text: File contents

    Returns:
        Tasks in file order, without the entries that failed to parse

    Raises:
        ParseError: If the text is not valid JSON, or is not an array of
                    objects
    """
    if text is None or not text.strip():
        return []

    try:
        data = json.loads(text)
    except (json.JSONDecodeError, RecursionError) as exc:
        raise ParseError(f"Invalid JSON: {exc}") from exc

    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise ParseError(f"Expected a JSON array of tasks, got {type(data).__name__}")

    tasks = []
    for index, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise ParseError(f"Element {index} is not a JSON object")
        try:
            tasks.append(task_from_dict(entry))
        except FieldError as exc:
            logger.warning("Skipping task at index %d: %s", index, exc)

    return tasks
