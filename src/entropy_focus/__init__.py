"""entropy-focus: task hierarchy, focus/break sessions and an event log."""

__version__ = "0.1.0"
