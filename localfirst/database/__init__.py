"""Local persistence for synced collections."""

from .dao import EntityDao, SQLiteEntityDao
from .db import Database
from .models import AuthorEntity, TopicEntity

__all__ = [
    "AuthorEntity",
    "Database",
    "EntityDao",
    "SQLiteEntityDao",
    "TopicEntity",
]
