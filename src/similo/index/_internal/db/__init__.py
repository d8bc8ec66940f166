"""Database layer for the index."""

from similo.index._internal.db.database import Database

__all__ = ["Database"]
