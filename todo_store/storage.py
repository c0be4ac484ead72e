"""Storage layer for todo-store.

This module provides an abstract storage interface and concrete implementations
for persisting tasks. JsonStorage keeps the tasks in a single JSON file and
replaces it atomically on every save. There is no file locking: two writers
pointed at the same file simply overwrite each other.
"""

import logging
import os
import shutil
import tempfile
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional, Union

from todo_store import codec
from todo_store.config import load_settings
from todo_store.errors import StorageError
from todo_store.models import Task

logger = logging.getLogger(__name__)

BACKUP_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


class Storage(ABC):
    """Abstract base class for task storage implementations."""

    @abstractmethod
    def save(self, tasks: Iterable[Task]) -> None:
        """Save tasks to storage.

        Args:
            tasks: Tasks to persist, in order

        Raises:
            StorageError: If the data could not be written
        """
        pass

    @abstractmethod
    def load(self) -> List[Task]:
        """Load tasks from storage.

        Returns:
            List of Task objects. Empty when nothing has been stored yet.

        Raises:
            ParseError: If the stored data is malformed
            StorageError: If the data could not be read
        """
        pass

    @abstractmethod
    def delete(self) -> None:
        """Delete all data from storage."""
        pass


class InMemoryStorage(Storage):
    """Storage that keeps the encoded JSON text in memory.

    Attributes:
        text: Last saved JSON text, or None if nothing was saved
        save_count: Number of successful saves
    """

    def __init__(self, text: Optional[str] = None):
        self.text = text
        self.save_count = 0

    def save(self, tasks: Iterable[Task]) -> None:
        self.text = codec.encode(tasks)
        self.save_count += 1

    def load(self) -> List[Task]:
        return codec.decode(self.text)

    def delete(self) -> None:
        self.text = None


class JsonStorage(Storage):
    """JSON file-based storage implementation.

    Attributes:
        file_path: Path to the JSON storage file
    """

    def __init__(self, file_path: Optional[Union[str, Path]] = None):
        """Initialize JsonStorage with a file path.

        Args:
            file_path: Path to the JSON file for storage. If None, uses the
                      configured path (TODO_DB_PATH, or data/tasks.json)
        """
        if file_path is None:
            file_path = load_settings().tasks_path
        self.file_path = Path(file_path)

    def save(self, tasks: Iterable[Task]) -> None:
        """Save tasks to the JSON file.

        The text is written to a temporary file next to the target, which
        then replaces the target in one rename.

        Args:
            tasks: Tasks to persist, in order
        """
        self._write(self.file_path, codec.encode(tasks))

    def load(self) -> List[Task]:
        """Load tasks from the JSON file.

        Returns:
            List of Task objects. Returns an empty list if the file doesn't
            exist or is empty.
        """
        if not self.file_path.exists():
            logger.debug("No tasks file at %s yet", self.file_path)
            return []

        try:
            content = self.file_path.read_text(encoding="utf-8-sig")
        except OSError as exc:
            raise StorageError(f"Cannot read {self.file_path}: {exc}") from exc

        tasks = codec.decode(content)
        logger.debug("Loaded %d task(s) from %s", len(tasks), self.file_path)
        return tasks

    def delete(self) -> None:
        """Delete the JSON storage file.

        If the file doesn't exist, this method does nothing.
        """
        if self.file_path.exists():
            self.file_path.unlink()

    def export(self, tasks: Iterable[Task], path: Union[str, Path]) -> Path:
        """Write tasks to another file in the same format.

        Args:
            tasks: Tasks to export
            path: Destination file

        Returns:
            Path of the written file
        """
        target = Path(path)
        self._write(target, codec.encode(tasks))
        logger.info("Exported tasks to %s", target)
        return target

    def backup(self) -> Optional[Path]:
        """Copy the current tasks file to a timestamped backup beside it.

        Returns:
            Path of the backup, or None if there is no tasks file yet
        """
        if not self.file_path.exists():
            return None

        stamp = datetime.now().strftime(BACKUP_TIMESTAMP_FORMAT)
        target = self.file_path.with_name(f"{self.file_path.stem}_backup_{stamp}.json")
        try:
            shutil.copy2(self.file_path, target)
        except OSError as exc:
            raise StorageError(f"Cannot back up {self.file_path}: {exc}") from exc

        logger.info("Backed up %s to %s", self.file_path, target)
        return target

    @staticmethod
    def _write(path: Path, content: str) -> None:
        tmp_name = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=path.parent,
                prefix=f".{path.name}.",
                suffix=".tmp",
                delete=False,
            ) as f:
                tmp_name = f.name
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except OSError as exc:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageError(f"Cannot write {path}: {exc}") from exc
