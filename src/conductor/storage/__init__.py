"""Durable storage — the SQLite database shared by the coordination stores."""

from conductor.storage.database import Database, new_id, utc_now

__all__ = ["Database", "new_id", "utc_now"]
