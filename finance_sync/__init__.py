"""Local-first personal finance store with REST synchronization."""

__version__ = "0.1.0"
