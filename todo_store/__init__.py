"""todo-store: a to-do list manager with JSON file persistence."""
