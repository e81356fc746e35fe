"""Factory for creating repository instances."""

from dataclasses import dataclass
from typing import Optional

from ..errors import ConfigurationError
from ..models import StoreConfig
from .base import ReviewerRepository, SongRepository
from .memory import InMemoryReviewerRepository, InMemorySongRepository
from .sqlite import SQLiteDatabase, SQLiteReviewerRepository, SQLiteSongRepository


@dataclass
class Repositories:
    """The song and reviewer stores for one process."""

    songs: SongRepository
    reviewers: ReviewerRepository
    database: Optional[SQLiteDatabase] = None

    def close(self):
        if self.database:
            self.database.close()


def create_repositories(config: StoreConfig) -> Repositories:
    """Create repositories based on configuration.

    Args:
        config: Store configuration

    Raises:
        ConfigurationError: If an unknown backend is configured
    """
    if config.backend == "memory":
        return Repositories(songs=InMemorySongRepository(), reviewers=InMemoryReviewerRepository())

    elif config.backend == "sqlite":
        database = SQLiteDatabase(config.db_path or ":memory:")
        return Repositories(
            songs=SQLiteSongRepository(database),
            reviewers=SQLiteReviewerRepository(database),
            database=database,
        )

    else:
        raise ConfigurationError(f"Unknown store backend: {config.backend}", config_key="store.backend")
