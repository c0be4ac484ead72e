"""Entry point for todo-store when run as a module.

This allows the package to be run with: python -m todo_store
"""

import sys

from todo_store.cli import main

if __name__ == "__main__":
    sys.exit(main())
