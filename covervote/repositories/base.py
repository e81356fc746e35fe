"""Lightweight base repositories for the song and reviewer stores."""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, TypeVar
import logging

from ..errors import StoreError
from ..models import Original, Reviewer

T = TypeVar("T")

# Fields that stores keep as indexed columns; everything else is matched on the document
INDEXED_SONG_FIELDS = {
    "_id": "record_id",
    "original_id": "original_id",
    "assigned_user": "assigned_user",
    "song_number": "song_number",
}


class RepositoryError(StoreError):
    """Repository-specific error."""
    pass


class DuplicateKeyError(RepositoryError):
    """A unique key is already taken."""

    def __init__(self, message: str, key: Optional[str] = None, value: Any = None):
        super().__init__(message, error_code="duplicate_key", context={"key": key, "value": value})
        self.key = key
        self.value = value


class BaseRepository(ABC):
    """Abstract base repository for document access."""

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[Any]:
        """Get a record by its store id, or None."""
        pass

    @abstractmethod
    def find_by(self, field: str, value: Any) -> List[Any]:
        """Find records whose field equals value exactly, in store order."""
        pass

    @abstractmethod
    def find_all(self) -> List[Any]:
        """All records in store order."""
        pass

    @abstractmethod
    def create(self, item: Any) -> Any:
        """Insert a new record."""
        pass

    def exists(self, id: str) -> bool:
        """Check if a record exists.

        Args:
            id: Store id
        """
        return self.get_by_id(id) is not None

    def batch_get(self, ids: List[str]) -> List[Optional[Any]]:
        """Get multiple records by ids (None for the ones not found)."""
        return [self.get_by_id(id) for id in ids]


class SongRepository(BaseRepository):
    """Store for Originals with their nested candidates.

    Store order is insertion order. Every mutation of a single Original is
    atomic with respect to other mutations of the same Original.
    """

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[Original]:
        pass

    @abstractmethod
    def create(self, item: Original) -> Original:
        """Insert a new Original.

        Assigns the store id and, when the Original carries none, the next
        song number. Raises DuplicateKeyError if the original_id is taken.
        """
        pass

    @abstractmethod
    def save(self, item: Original) -> Original:
        """Upsert an Original by its store id."""
        pass

    @abstractmethod
    def update(self, id: str, mutator: Callable[[Original], T]) -> T:
        """Atomically read, mutate and persist one Original.

        The mutator receives a freshly read copy and may modify it in place.
        Its return value is passed back. If it raises, nothing is written.
        Raises NotFoundError if no Original has this store id.
        """
        pass

    def find_by_original_id(self, original_id: str) -> Optional[Original]:
        """Look up an Original by its external id."""
        matches = self.find_by("original_id", original_id)
        return matches[0] if matches else None

    def find_by_assigned_user(self, user: str) -> List[Original]:
        return self.find_by("assigned_user", user)

    def _next_song_number(self, documents: List[Dict[str, Any]]) -> int:
        numbers = [doc.get("song_number") or 0 for doc in documents]
        return max(numbers, default=0) + 1


class ReviewerRepository(BaseRepository):
    """Store for the reviewer set."""

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[Reviewer]:
        """Get a reviewer by exact name."""
        pass

    @abstractmethod
    def create(self, item: Reviewer) -> Reviewer:
        """Add a reviewer. Raises DuplicateKeyError on a repeated name."""
        pass

    def find_by(self, field: str, value: Any) -> List[Reviewer]:
        return [r for r in self.find_all() if getattr(r, field, None) == value]

    def names(self) -> List[str]:
        """Reviewer names in insertion order."""
        return [reviewer.name for reviewer in self.find_all()]

    def ensure(self, names: List[str]) -> List[Reviewer]:
        """Add any of the given names that are not yet known.

        Returns:
            The reviewers that were added
        """
        known = set(self.names())
        added = []
        for name in names:
            if name in known:
                continue
            added.append(self.create(Reviewer(name=name)))
            known.add(name)
        return added
