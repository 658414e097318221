"""Local SQLite store."""

from .database import Database

__all__ = ["Database"]
