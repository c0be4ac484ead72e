"""Tests for settings and logging setup."""

import logging
from pathlib import Path

import pytest

from todo_store.config import Settings, load_settings
from todo_store.logging_setup import setup_logging

ENV_NAMES = ("TODO_DATA_DIR", "TODO_TASKS_FILE", "TODO_DB_PATH", "TODO_LOG_LEVEL", "TODO_LOG_FILE")


@pytest.fixture
def clean_env(monkeypatch):
    """Remove all todo-store variables from the environment."""
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestSettings:
    """Tests for load_settings."""

    def test_defaults(self, clean_env):
        """Test the settings used when nothing is configured."""
        settings = load_settings()

        assert settings.data_dir == Path("data")
        assert settings.tasks_file == "tasks.json"
        assert settings.tasks_path == Path("data") / "tasks.json"
        assert settings.log_level == logging.WARNING
        assert settings.log_file is None

    def test_data_dir_and_file(self, clean_env):
        """Test overriding the directory and file name separately."""
        clean_env.setenv("TODO_DATA_DIR", "/srv/todo")
        clean_env.setenv("TODO_TASKS_FILE", "mine.json")

        assert load_settings().tasks_path == Path("/srv/todo/mine.json")

    def test_db_path_takes_precedence(self, clean_env):
        """Test that TODO_DB_PATH wins over the directory settings."""
        clean_env.setenv("TODO_DATA_DIR", "/srv/todo")
        clean_env.setenv("TODO_DB_PATH", "/tmp/other.json")

        assert load_settings().tasks_path == Path("/tmp/other.json")

    def test_blank_values_ignored(self, clean_env):
        """Test that empty variables fall back to defaults."""
        clean_env.setenv("TODO_DATA_DIR", "  ")
        clean_env.setenv("TODO_TASKS_FILE", "")

        assert load_settings().tasks_path == Path("data") / "tasks.json"

    def test_log_level(self, clean_env):
        """Test reading the log level by name."""
        clean_env.setenv("TODO_LOG_LEVEL", "debug")
        assert load_settings().log_level == logging.DEBUG

    def test_invalid_log_level_falls_back(self, clean_env):
        """Test that an unknown level name is ignored."""
        clean_env.setenv("TODO_LOG_LEVEL", "chatty")
        assert load_settings().log_level == logging.WARNING

    def test_explicit_settings(self):
        """Test building Settings directly."""
        settings = Settings(db_path=Path("x.json"))
        assert settings.tasks_path == Path("x.json")


class TestSetupLogging:
    """Tests for setup_logging."""

    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        """Put the root logger back the way pytest left it."""
        root = logging.getLogger()
        handlers = list(root.handlers)
        level = root.level
        yield
        for h in list(root.handlers):
            root.removeHandler(h)
            h.close()
        for h in handlers:
            root.addHandler(h)
        root.setLevel(level)

    def test_console_handler_installed(self):
        """Test that one stderr handler is installed at the given level."""
        setup_logging(console_level=logging.INFO)

        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.handlers[0].level == logging.INFO

    def test_repeated_calls_do_not_duplicate(self):
        """Test that calling setup_logging twice keeps one handler."""
        setup_logging()
        setup_logging()
        assert len(logging.getLogger().handlers) == 1

    def test_file_handler(self, tmp_path):
        """Test that log records reach the configured file."""
        log_file = tmp_path / "logs" / "todo.log"
        setup_logging(console_level=logging.ERROR, log_file=log_file)

        logging.getLogger("todo_store.test").debug("hello file")
        for h in logging.getLogger().handlers:
            h.flush()

        assert "hello file" in log_file.read_text(encoding="utf-8")
