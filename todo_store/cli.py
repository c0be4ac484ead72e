"""Command-line interface for todo-store.

This module provides the CLI interface for managing tasks using argparse.
It supports the following commands:
- add: Create a new task
- list: List all tasks or filter by status
- done / undo: Mark a task as completed or not completed
- delete: Delete a task
- search: Find tasks by title or description
- stats: Show task counts
- export / backup / clear: Manage the tasks file

Task IDs may be abbreviated to any unique prefix.
"""

import argparse
import logging
import sys
from datetime import datetime, timedelta
from typing import List, Optional

from todo_store.codec import parse_datetime
from todo_store.config import load_settings
from todo_store.errors import FieldError, TaskStoreError
from todo_store.logging_setup import setup_logging
from todo_store.models import Category, Priority, Task
from todo_store.repository import TaskRegistry
from todo_store.storage import JsonStorage

logger = logging.getLogger(__name__)

PRIORITY_CHOICES = [p.name.lower() for p in Priority]
CATEGORY_CHOICES = [c.name.lower() for c in Category]


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog="todo",
        description="To-do list manager backed by a JSON file"
    )
    parser.add_argument("--file", help="Tasks file to use instead of the configured one")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show informational logs")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Add command
    add_parser = subparsers.add_parser("add", help="Add a new task")
    add_parser.add_argument("title", help="Task title")
    add_parser.add_argument("--description", default="", help="Task description")
    add_parser.add_argument(
        "--start",
        help="Start time, YYYY-MM-DDTHH:MM:SS or YYYY-MM-DD (default: now)"
    )
    add_parser.add_argument(
        "--end",
        help="Deadline, YYYY-MM-DDTHH:MM:SS or YYYY-MM-DD (default: one day after start)"
    )
    add_parser.add_argument(
        "--priority",
        choices=PRIORITY_CHOICES,
        default=Priority.default().name.lower(),
        help="Task priority (default: important)"
    )
    add_parser.add_argument(
        "--category",
        choices=CATEGORY_CHOICES,
        default=Category.default().name.lower(),
        help="Task category (default: other)"
    )

    # List command
    list_parser = subparsers.add_parser("list", help="List tasks")
    list_parser.add_argument(
        "--status",
        choices=["pending", "done"],
        help="Filter tasks by status"
    )
    list_parser.add_argument("--overdue", action="store_true", help="Only overdue tasks")

    # Done / undo commands
    done_parser = subparsers.add_parser("done", help="Mark a task as done")
    done_parser.add_argument("id", help="Task ID or unique prefix")

    undo_parser = subparsers.add_parser("undo", help="Mark a task as not done")
    undo_parser.add_argument("id", help="Task ID or unique prefix")

    # Delete command
    delete_parser = subparsers.add_parser("delete", help="Delete a task")
    delete_parser.add_argument("id", help="Task ID or unique prefix")

    # Search command
    search_parser = subparsers.add_parser("search", help="Search tasks")
    search_parser.add_argument("query", nargs="?", default="", help="Text to look for")

    subparsers.add_parser("stats", help="Show task counts")

    export_parser = subparsers.add_parser("export", help="Export tasks to a file")
    export_parser.add_argument("path", help="Destination file")

    subparsers.add_parser("backup", help="Back up the tasks file")

    clear_parser = subparsers.add_parser("clear", help="Delete all tasks")
    clear_parser.add_argument("--yes", action="store_true", help="Confirm deletion")

    return parser


def format_task(task: Task) -> str:
    """Render a task as a single list line."""
    status_icon = "x" if task.completed else " "
    overdue = " OVERDUE" if task.overdue else ""
    return (
        f"[{status_icon}] {task.id[:8]} {task.title} "
        f"[{task.priority.name.lower()}/{task.category.name.lower()}] "
        f"(due {task.formatted_end_time}){overdue}"
    )


def resolve_task(repo: TaskRegistry, raw_id: str) -> Optional[Task]:
    """Find a task by full ID or unique ID prefix.

    Prints an error and returns None when nothing or more than one task
    matches.
    """
    task = repo.get(raw_id)
    if task is not None:
        return task

    matches = [t for t in repo.get_all() if t.id.startswith(raw_id)]
    if len(matches) == 1:
        return matches[0]

    if not matches:
        print(f"Error: Task {raw_id} not found.", file=sys.stderr)
    else:
        print(f"Error: Task ID {raw_id} is ambiguous.", file=sys.stderr)
    return None


def cmd_add(args: argparse.Namespace, repo: TaskRegistry) -> int:
    """Handle the 'add' command.

    Args:
        args: Parsed command-line arguments
        repo: TaskRegistry instance

    Returns:
        Exit code (0 for success, 1 for error)
    """
    try:
        start = parse_datetime(args.start, "start") if args.start else datetime.now().replace(microsecond=0)
        end = parse_datetime(args.end, "end") if args.end else start + timedelta(days=1)
    except FieldError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    task = Task.create(
        title=args.title,
        description=args.description,
        start_time=start,
        end_time=end,
        priority=Priority.from_name(args.priority),
        category=Category.from_name(args.category),
    )
    if not repo.add(task):
        print("Error: Could not save the task.", file=sys.stderr)
        return 1

    print(f"Task added: {task.id[:8]} {task.title} [{task.priority.name.lower()}]")
    return 0


def cmd_list(args: argparse.Namespace, repo: TaskRegistry) -> int:
    """Handle the 'list' command.

    Args:
        args: Parsed command-line arguments
        repo: TaskRegistry instance

    Returns:
        Exit code (0 for success)
    """
    if args.overdue:
        tasks = repo.overdue_tasks()
    else:
        tasks = repo.get_all()

    if args.status is not None:
        done = args.status == "done"
        tasks = [task for task in tasks if task.completed == done]

    if not tasks:
        print("No tasks found.")
        return 0

    for task in tasks:
        print(format_task(task))

    return 0


def _set_completed(args: argparse.Namespace, repo: TaskRegistry, completed: bool) -> int:
    task = resolve_task(repo, args.id)
    if task is None:
        return 1

    if not repo.mark_completed(task.id, completed):
        print("Error: Could not save the task.", file=sys.stderr)
        return 1

    state = "done" if completed else "not done"
    print(f"Task {task.id[:8]} marked as {state}: {task.title}")
    return 0


def cmd_done(args: argparse.Namespace, repo: TaskRegistry) -> int:
    """Handle the 'done' command."""
    return _set_completed(args, repo, True)


def cmd_undo(args: argparse.Namespace, repo: TaskRegistry) -> int:
    """Handle the 'undo' command."""
    return _set_completed(args, repo, False)


def cmd_delete(args: argparse.Namespace, repo: TaskRegistry) -> int:
    """Handle the 'delete' command.

    Args:
        args: Parsed command-line arguments
        repo: TaskRegistry instance

    Returns:
        Exit code (0 for success, 1 for error)
    """
    task = resolve_task(repo, args.id)
    if task is None:
        return 1

    if not repo.remove(task.id):
        print("Error: Could not save the task list.", file=sys.stderr)
        return 1

    print(f"Task {task.id[:8]} deleted.")
    return 0


def cmd_search(args: argparse.Namespace, repo: TaskRegistry) -> int:
    """Handle the 'search' command."""
    tasks = repo.search(args.query)
    if not tasks:
        print("No tasks found.")
        return 0

    for task in tasks:
        print(format_task(task))
    return 0


def cmd_stats(args: argparse.Namespace, repo: TaskRegistry) -> int:
    """Handle the 'stats' command."""
    stats = repo.statistics()
    print(
        f"Total: {stats['total']}  Active: {stats['active']}  "
        f"Completed: {stats['completed']}  Overdue: {stats['overdue']}"
    )
    return 0


def cmd_export(args: argparse.Namespace, repo: TaskRegistry) -> int:
    """Handle the 'export' command."""
    if not repo.export(args.path):
        print(f"Error: Could not export tasks to {args.path}.", file=sys.stderr)
        return 1

    print(f"Exported {len(repo)} task(s) to {args.path}")
    return 0


def cmd_backup(args: argparse.Namespace, repo: TaskRegistry) -> int:
    """Handle the 'backup' command."""
    target = repo.backup()
    if target is None:
        print("Error: Nothing to back up.", file=sys.stderr)
        return 1

    print(f"Backup written to {target}")
    return 0


def cmd_clear(args: argparse.Namespace, repo: TaskRegistry) -> int:
    """Handle the 'clear' command."""
    if not args.yes:
        print("Error: Refusing to delete all tasks without --yes.", file=sys.stderr)
        return 1

    count = len(repo)
    if not repo.clear():
        print("Error: Could not save the empty task list.", file=sys.stderr)
        return 1

    print(f"Deleted {count} task(s).")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI.

    Args:
        argv: Command-line arguments. If None, uses sys.argv[1:]

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    settings = load_settings()
    setup_logging(
        console_level=logging.INFO if args.verbose else settings.log_level,
        log_file=settings.log_file,
    )

    repo = TaskRegistry(JsonStorage(args.file or settings.tasks_path))

    # Dispatch to command handlers
    commands = {
        "add": cmd_add,
        "list": cmd_list,
        "done": cmd_done,
        "undo": cmd_undo,
        "delete": cmd_delete,
        "search": cmd_search,
        "stats": cmd_stats,
        "export": cmd_export,
        "backup": cmd_backup,
        "clear": cmd_clear,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Error: Unknown command '{args.command}'", file=sys.stderr)
        return 1

    try:
        repo.load()
        return handler(args, repo)
    except TaskStoreError as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
