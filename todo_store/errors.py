"""Exceptions raised by todo-store.

All errors derive from TaskStoreError so callers can catch the whole family
with one clause:
- ValidationError: a Task was built or modified with invalid data
- ParseError: persisted text is not a JSON array of task objects
- FieldError: a single task object cannot be turned into a Task
- StorageError: the backing file could not be read or written
- DuplicateTaskError: a task id is already present in the registry
"""

from typing import Optional


class TaskStoreError(Exception):
    """Base class for all todo-store errors."""


class ValidationError(TaskStoreError, ValueError):
    """Raised when a Task is constructed or updated with invalid data."""


class ParseError(TaskStoreError):
    """Raised when persisted text has a malformed top-level structure."""


class FieldError(TaskStoreError):
    """Raised when one task object has a missing or unparseable field.

    Attributes:
        field: Name of the offending field, if known
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class StorageError(TaskStoreError):
    """Raised when the backing store cannot be read or written."""


class DuplicateTaskError(TaskStoreError, ValueError):
    """Raised when adding a task whose id already exists."""
