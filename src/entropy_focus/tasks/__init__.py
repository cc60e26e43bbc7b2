"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskList, LogEntry, UserSettings, enums)
- task_store.py: in-memory store + completion cascade
- ordering.py: sibling buckets and sort-key rewrites after a drag
- visibility.py: which tasks a list view renders
"""
