"""Task registry for managing task operations.

This module provides TaskRegistry, the authoritative in-memory collection of
tasks. Every mutation is written through to the storage backend immediately.
Query methods return new lists, so callers cannot change the registry by
mutating a result.
"""

import logging
from datetime import date, datetime, time, timedelta
from pathlib import Path
from typing import Dict, List, Optional, Union

from todo_store.errors import DuplicateTaskError, StorageError
from todo_store.models import Category, Priority, Task
from todo_store.storage import JsonStorage, Storage

logger = logging.getLogger(__name__)


def _priority_rank(priority: Priority) -> int:
    return list(Priority).index(priority)


class TaskRegistry:
    """In-memory task collection with write-through persistence.

    The registry is a plain object: build one at application start and pass
    it to whatever needs it. Nothing is loaded until load() is called.

    Attributes:
        storage: Storage backend for persisting tasks
    """

    def __init__(self, storage: Optional[Storage] = None):
        """Initialize TaskRegistry with a storage backend.

        Args:
            storage: Storage implementation to use. If None, uses JsonStorage
                    with the configured file path.
        """
        self.storage = storage or JsonStorage()
        self._tasks: List[Task] = []

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, task_id: object) -> bool:
        return self._index_of(task_id) is not None

    def _index_of(self, task_id: object) -> Optional[int]:
        for index, task in enumerate(self._tasks):
            if task.id == task_id:
                return index
        return None

    def _refresh_overdue(self, now: Optional[datetime] = None) -> None:
        if now is None:
            now = datetime.now()
        for task in self._tasks:
            task.recompute_overdue(now)

    # Persistence

    def load(self) -> int:
        """Replace the in-memory tasks with the contents of storage.

        A missing or empty backing file yields an empty registry. Tasks whose
        id repeats an earlier one are dropped.

        Returns:
            Number of tasks loaded

        Raises:
            ParseError: If the stored data is malformed
            StorageError: If the data exists but could not be read
        """
        loaded = self.storage.load()

        tasks: List[Task] = []
        seen = set()
        for task in loaded:
            if task.id in seen:
                logger.warning("Dropping task with duplicate id %s (%r)", task.id, task.title)
                continue
            seen.add(task.id)
            tasks.append(task)

        self._tasks = tasks
        self._refresh_overdue()
        logger.info("Loaded %d task(s)", len(self._tasks))
        return len(self._tasks)

    def save(self) -> bool:
        """Persist the current tasks.

        Returns:
            True on success, False if the write failed (the cause is logged)
        """
        try:
            self.storage.save(list(self._tasks))
        except (StorageError, OSError) as exc:
            logger.error("Failed to save tasks: %s", exc)
            return False
        return True

    # Mutations

    def add(self, task: Task) -> bool:
        """Add a task and persist.

        Args:
            task: Task to add

        Returns:
            Result of the write (see save())

        Raises:
            DuplicateTaskError: If a task with the same id is already present
        """
        if task.id in self:
            raise DuplicateTaskError(f"Task with ID {task.id} already exists")

        task.recompute_overdue()
        self._tasks.append(task)
        return self.save()

    def create(
        self,
        title: str,
        description: str,
        start_time: datetime,
        end_time: datetime,
        priority: Optional[Priority] = None,
        category: Optional[Category] = None,
    ) -> Task:
        """Create a new task, add it and persist.

        Returns:
            The created Task object with its generated ID
        """
        task = Task.create(title, description, start_time, end_time, priority, category)
        self.add(task)
        return task

    def remove(self, task_id: str) -> bool:
        """Delete a task by ID.

        Args:
            task_id: ID of the task to delete

        Returns:
            False if the task didn't exist (nothing is written), otherwise
            the result of the write
        """
        index = self._index_of(task_id)
        if index is None:
            return False

        del self._tasks[index]
        return self.save()

    def update(self, task: Task) -> bool:
        """Replace the stored task that has the same ID.

        Args:
            task: Task object with updated data

        Returns:
            False if no task has that ID (nothing is written), otherwise
            the result of the write
        """
        index = self._index_of(task.id)
        if index is None:
            return False

        task.recompute_overdue()
        self._tasks[index] = task
        return self.save()

    def mark_completed(self, task_id: str, completed: bool = True) -> bool:
        """Set the completion flag of a task.

        Returns:
            False if the task doesn't exist, otherwise the result of the write
        """
        task = self.get(task_id)
        if task is None:
            return False

        task.mark_completed(completed)
        return self.save()

    def clear(self) -> bool:
        """Remove every task and persist the empty state."""
        self._tasks = []
        return self.save()

    # Queries

    def get(self, task_id: str) -> Optional[Task]:
        """Get a specific task by ID, or None if it doesn't exist."""
        index = self._index_of(task_id)
        return None if index is None else self._tasks[index]

    def get_all(self) -> List[Task]:
        """Get all tasks in insertion order, with overdue flags refreshed."""
        self._refresh_overdue()
        return list(self._tasks)

    def search(self, query: Optional[str]) -> List[Task]:
        """Find tasks whose title or description contains query.

        Matching ignores case. A None, empty or whitespace-only query
        returns every task.
        """
        if query is None or not query.strip():
            return list(self._tasks)

        needle = query.casefold()
        return [
            task
            for task in self._tasks
            if needle in task.title.casefold() or needle in task.description.casefold()
        ]

    def filter_by_completion(self, completed: bool) -> List[Task]:
        return [task for task in self._tasks if task.completed == completed]

    def count_by_completion(self, completed: bool) -> int:
        return len(self.filter_by_completion(completed))

    def filter_by_priority(self, priority: Priority) -> List[Task]:
        return [task for task in self._tasks if task.priority == priority]

    def filter_by_category(self, category: Category) -> List[Task]:
        return [task for task in self._tasks if task.category == category]

    def overdue_tasks(self, now: Optional[datetime] = None) -> List[Task]:
        """Get tasks that are not completed and past their deadline."""
        self._refresh_overdue(now)
        return [task for task in self._tasks if task.overdue]

    def count_overdue(self, now: Optional[datetime] = None) -> int:
        """Count overdue tasks after refreshing every overdue flag."""
        return len(self.overdue_tasks(now))

    def tasks_for_date(self, day: date) -> List[Task]:
        """Get tasks whose start..end span covers any part of the given day."""
        day_start = datetime.combine(day, time.min)
        day_end = day_start + timedelta(days=1)
        return [
            task
            for task in self._tasks
            if task.start_time < day_end and task.end_time >= day_start
        ]

    def tasks_due_on(self, day: date) -> List[Task]:
        """Get tasks whose deadline falls on the given day, most pressing first."""
        due = [task for task in self._tasks if task.end_time.date() == day]
        return sorted(due, key=lambda task: (_priority_rank(task.priority), task.end_time))

    def tasks_due_today(self, today: Optional[date] = None) -> List[Task]:
        return self.tasks_due_on(today or date.today())

    def tasks_for_week(self, week_start: date) -> List[Task]:
        """Get tasks due within the seven days starting at week_start.

        Results are ordered by deadline, then by priority.
        """
        week_end = week_start + timedelta(days=6)
        due = [task for task in self._tasks if week_start <= task.end_time.date() <= week_end]
        return sorted(due, key=lambda task: (task.end_time, _priority_rank(task.priority)))

    def tasks_due_this_week(self, today: Optional[date] = None) -> List[Task]:
        """Get tasks due in the Monday-to-Sunday week containing today."""
        today = today or date.today()
        return self.tasks_for_week(today - timedelta(days=today.weekday()))

    def tasks_grouped_by_date(self) -> Dict[date, List[Task]]:
        """Group tasks by deadline date, with keys in ascending order."""
        groups: Dict[date, List[Task]] = {}
        for task in sorted(self._tasks, key=lambda task: task.end_time.date()):
            groups.setdefault(task.end_time.date(), []).append(task)
        return groups

    def has_time_conflict(
        self,
        start_time: datetime,
        end_time: datetime,
        exclude_id: Optional[str] = None,
    ) -> bool:
        """Check whether [start_time, end_time) overlaps an unfinished task.

        Args:
            start_time: Start of the proposed slot
            end_time: End of the proposed slot
            exclude_id: Task to ignore, e.g. the one being edited
        """
        return any(
            start_time < task.end_time and end_time > task.start_time
            for task in self._tasks
            if task.id != exclude_id and not task.completed
        )

    def statistics(self) -> Dict[str, int]:
        """Summarize the registry as total/completed/active/overdue counts."""
        completed = self.count_by_completion(True)
        return {
            "total": len(self._tasks),
            "completed": completed,
            "active": len(self._tasks) - completed,
            "overdue": self.count_overdue(),
        }

    # Files

    def export(self, path: Union[str, Path]) -> bool:
        """Write the current tasks to another file.

        Returns:
            True on success, False if the storage cannot export or the write
            failed
        """
        export = getattr(self.storage, "export", None)
        if export is None:
            logger.error("%s does not support export", type(self.storage).__name__)
            return False
        try:
            export(list(self._tasks), path)
        except (StorageError, OSError) as exc:
            logger.error("Failed to export tasks to %s: %s", path, exc)
            return False
        return True

    def backup(self) -> Optional[Path]:
        """Back up the backing file.

        Returns:
            Path of the backup, or None if there was nothing to back up or
            the copy failed
        """
        backup = getattr(self.storage, "backup", None)
        if backup is None:
            logger.error("%s does not support backup", type(self.storage).__name__)
            return None
        try:
            return backup()
        except (StorageError, OSError) as exc:
            logger.error("Failed to back up tasks: %s", exc)
            return None
