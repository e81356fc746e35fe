"""Repository pattern implementation for song and reviewer storage."""

from .base import (
    BaseRepository,
    DuplicateKeyError,
    RepositoryError,
    ReviewerRepository,
    SongRepository,
)
from .memory import InMemoryReviewerRepository, InMemorySongRepository
from .sqlite import SQLiteDatabase, SQLiteReviewerRepository, SQLiteSongRepository
from .factory import Repositories, create_repositories

__all__ = [
    "BaseRepository",
    "DuplicateKeyError",
    "RepositoryError",
    "ReviewerRepository",
    "SongRepository",
    "InMemoryReviewerRepository",
    "InMemorySongRepository",
    "SQLiteDatabase",
    "SQLiteReviewerRepository",
    "SQLiteSongRepository",
    "Repositories",
    "create_repositories",
]
