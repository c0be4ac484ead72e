"""Comprehensive tests for storage layer."""

import json
import tempfile
from datetime import datetime
from pathlib import Path
from unittest.mock import patch

import pytest

from todo_store.errors import ParseError, StorageError
from todo_store.models import Category, Priority, Task
from todo_store.storage import InMemoryStorage, JsonStorage, Storage


class TestJsonStorage:
    """Test suite for JsonStorage implementation."""

    @pytest.fixture
    def temp_dir(self):
        """Create a temporary directory for testing."""
        with tempfile.TemporaryDirectory() as d:
            yield Path(d)

    @pytest.fixture
    def temp_file(self, temp_dir):
        """Path of a tasks file that does not exist yet."""
        return temp_dir / "data" / "tasks.json"

    @pytest.fixture
    def storage(self, temp_file):
        """Create a JsonStorage instance with temporary file."""
        return JsonStorage(temp_file)

    @pytest.fixture
    def sample_tasks(self):
        """Create sample tasks for testing."""
        return [
            Task(
                id="task-1",
                title="Test task 1",
                start_time=datetime(2025, 1, 15, 9, 30, 0),
                end_time=datetime(2025, 1, 15, 18, 0, 0),
                priority=Priority.URGENT,
                category=Category.WORK,
                created_at=datetime(2024, 1, 1, 12, 0, 0),
            ),
            Task(
                id="task-2",
                title="Test task 2",
                description="Second",
                start_time=datetime(2025, 1, 16, 9, 0, 0),
                end_time=datetime(2025, 1, 16, 10, 0, 0),
                priority=Priority.NORMAL,
                category=Category.HOME,
                completed=True,
                created_at=datetime(2024, 1, 2, 12, 0, 0),
            ),
        ]

    def test_storage_is_abstract(self):
        """Test that Storage is an abstract base class."""
        with pytest.raises(TypeError):
            Storage()

    def test_default_path_from_environment(self, monkeypatch, temp_file):
        """Test that the configured path is used when none is given."""
        monkeypatch.setenv("TODO_DB_PATH", str(temp_file))
        assert JsonStorage().file_path == temp_file

    def test_default_path(self, monkeypatch):
        """Test the built-in default location data/tasks.json."""
        for name in ("TODO_DB_PATH", "TODO_DATA_DIR", "TODO_TASKS_FILE"):
            monkeypatch.delenv(name, raising=False)
        assert JsonStorage().file_path == Path("data") / "tasks.json"

    def test_save_creates_file_and_directories(self, storage, sample_tasks):
        """Test that save creates the file and its parent directory."""
        assert not storage.file_path.exists()
        storage.save(sample_tasks)
        assert storage.file_path.exists()

    def test_save_writes_json_array(self, storage, sample_tasks):
        """Test that save writes a JSON array of task objects."""
        storage.save(sample_tasks)

        data = json.loads(storage.file_path.read_text(encoding="utf-8"))

        assert isinstance(data, list)
        assert data[0]["id"] == "task-1"
        assert data[0]["priority"] == "URGENT"
        assert data[0]["category"] == "WORK"
        assert data[0]["startTime"] == "2025-01-15T09:30:00"
        assert data[1]["completed"] is True

    def test_save_empty_writes_empty_array(self, storage):
        """Test that an empty task list is persisted as []."""
        storage.save([])
        assert storage.file_path.read_text(encoding="utf-8") == "[]"

    def test_save_leaves_no_temp_files(self, storage, sample_tasks):
        """Test that the temporary file is renamed over the target."""
        storage.save(sample_tasks)
        storage.save(sample_tasks[:1])
        assert [p.name for p in storage.file_path.parent.iterdir()] == ["tasks.json"]

    def test_failed_write_keeps_previous_file(self, storage, sample_tasks):
        """Test that a failed save leaves the old content intact."""
        storage.save(sample_tasks)
        before = storage.file_path.read_text(encoding="utf-8")

        with patch("todo_store.storage.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(StorageError):
                storage.save([])

        assert storage.file_path.read_text(encoding="utf-8") == before
        assert [p.name for p in storage.file_path.parent.iterdir()] == ["tasks.json"]

    def test_load_missing_file(self, storage):
        """Test that load returns empty list when file doesn't exist."""
        assert storage.load() == []

    def test_load_empty_file(self, storage):
        """Test that load returns empty list when file is empty."""
        storage.file_path.parent.mkdir(parents=True)
        storage.file_path.touch()
        assert storage.load() == []

    def test_load_whitespace_file(self, storage):
        """Test that a whitespace-only file holds no tasks."""
        storage.file_path.parent.mkdir(parents=True)
        storage.file_path.write_text("  \n\n ", encoding="utf-8")
        assert storage.load() == []

    def test_load_with_byte_order_mark(self, storage, sample_tasks):
        """Test that a UTF-8 BOM at the start of the file is tolerated."""
        storage.save(sample_tasks)
        text = storage.file_path.read_text(encoding="utf-8")
        storage.file_path.write_text("\ufeff" + text, encoding="utf-8")

        assert len(storage.load()) == 2

    def test_load_invalid_json_raises(self, storage):
        """Test that a corrupt file raises ParseError."""
        storage.file_path.parent.mkdir(parents=True)
        storage.file_path.write_text("{this is not json", encoding="utf-8")

        with pytest.raises(ParseError):
            storage.load()

    def test_load_unreadable_path_raises(self, temp_dir):
        """Test that a path that cannot be read raises StorageError."""
        storage = JsonStorage(temp_dir)
        with pytest.raises(StorageError):
            storage.load()

    def test_save_and_load_roundtrip(self, storage, sample_tasks):
        """Test that data survives save-load roundtrip."""
        storage.save(sample_tasks)
        loaded_tasks = storage.load()

        assert loaded_tasks == sample_tasks

    def test_save_overwrites_existing_data(self, storage, sample_tasks):
        """Test that save overwrites existing data."""
        storage.save(sample_tasks)
        storage.save(sample_tasks[1:])

        loaded_tasks = storage.load()
        assert [t.id for t in loaded_tasks] == ["task-2"]

    def test_delete_removes_file(self, storage, sample_tasks):
        """Test that delete removes the storage file."""
        storage.save(sample_tasks)
        assert storage.file_path.exists()

        storage.delete()
        assert not storage.file_path.exists()

    def test_delete_nonexistent_file(self, storage):
        """Test that delete on non-existent file doesn't raise error."""
        assert not storage.file_path.exists()
        storage.delete()  # Should not raise

    def test_export(self, storage, sample_tasks, temp_dir):
        """Test exporting tasks to another file."""
        target = storage.export(sample_tasks, temp_dir / "export" / "out.json")

        assert target.exists()
        content = target.read_text(encoding="utf-8")
        assert "Test task 1" in content
        assert "Test task 2" in content
        assert not storage.file_path.exists()

    def test_backup_without_file(self, storage):
        """Test that backup returns None when there is nothing to copy."""
        assert storage.backup() is None

    def test_backup_copies_file(self, storage, sample_tasks):
        """Test that backup writes a timestamped copy beside the file."""
        storage.save(sample_tasks)

        backup = storage.backup()

        assert backup is not None
        assert backup.parent == storage.file_path.parent
        assert backup.name.startswith("tasks_backup_")
        assert backup.suffix == ".json"
        assert backup.read_text(encoding="utf-8") == storage.file_path.read_text(encoding="utf-8")


class TestInMemoryStorage:
    """Test suite for InMemoryStorage."""

    def test_load_before_save(self):
        """Test that a fresh storage holds no tasks."""
        assert InMemoryStorage().load() == []

    def test_save_and_load(self):
        """Test that saved tasks can be loaded back."""
        storage = InMemoryStorage()
        task = Task.create("Task", "", datetime(2025, 1, 1), datetime(2025, 1, 2))

        storage.save([task])

        assert storage.load() == [task]
        assert storage.save_count == 1

    def test_save_empty(self):
        """Test that an empty list is stored as []."""
        storage = InMemoryStorage()
        storage.save([])
        assert storage.text == "[]"

    def test_delete(self):
        """Test that delete forgets the stored text."""
        storage = InMemoryStorage("[]")
        storage.delete()
        assert storage.text is None
