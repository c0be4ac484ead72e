"""Settings loaded from environment variables.

Variables (all optional):
- TODO_DATA_DIR: directory holding the tasks file (default: data)
- TODO_TASKS_FILE: name of the tasks file (default: tasks.json)
- TODO_DB_PATH: full path to the tasks file, overrides the two above
- TODO_LOG_LEVEL: console log level name (default: WARNING)
- TODO_LOG_FILE: also write logs to this file
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

ENV_PREFIX = "TODO"

DEFAULT_DATA_DIR = Path("data")
DEFAULT_TASKS_FILE = "tasks.json"


def _k(suffix: str) -> str:
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None or v.strip() == "" else v.strip()


def _env_path(name: str, default: Optional[Path]) -> Optional[Path]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw.strip()).expanduser()


def _env_log_level(name: str, default: int) -> int:
    raw = _env(name)
    if not raw:
        return default
    level = logging.getLevelName(raw.upper())
    return level if isinstance(level, int) else default


@dataclass
class Settings:
    """Runtime configuration for todo-store.

    Attributes:
        data_dir: Directory holding the tasks file
        tasks_file: File name of the tasks file inside data_dir
        db_path: Explicit tasks file path, takes precedence when set
        log_level: Console log level
        log_file: Optional file that receives all log records
    """

    data_dir: Path = DEFAULT_DATA_DIR
    tasks_file: str = DEFAULT_TASKS_FILE
    db_path: Optional[Path] = None
    log_level: int = logging.WARNING
    log_file: Optional[Path] = None

    @property
    def tasks_path(self) -> Path:
        """Path of the persisted tasks file."""
        if self.db_path is not None:
            return self.db_path
        return self.data_dir / self.tasks_file


def load_settings() -> Settings:
    """Build Settings from the current environment."""
    return Settings(
        data_dir=_env_path(_k("DATA_DIR"), DEFAULT_DATA_DIR),
        tasks_file=_env(_k("TASKS_FILE"), DEFAULT_TASKS_FILE),
        db_path=_env_path(_k("DB_PATH"), None),
        log_level=_env_log_level(_k("LOG_LEVEL"), logging.WARNING),
        log_file=_env_path(_k("LOG_FILE"), None),
    )
