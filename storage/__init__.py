# Storage layer
from .db import connect, SCHEMA_SQL
from .interfaces import DigestRepository, HighlightRepository, ImportJobRepository
from .memory import InMemoryDigestRepository, InMemoryHighlightRepository, InMemoryImportJobRepository
from .repository import SQLiteDigestRepository, SQLiteHighlightRepository, SQLiteImportJobRepository

__all__ = [
    "connect",
    "SCHEMA_SQL",
    "DigestRepository",
    "HighlightRepository",
    "ImportJobRepository",
    "InMemoryDigestRepository",
    "InMemoryHighlightRepository",
    "InMemoryImportJobRepository",
    "SQLiteDigestRepository",
    "SQLiteHighlightRepository",
    "SQLiteImportJobRepository",
]
