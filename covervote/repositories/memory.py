"""In-memory repositories, used by tests and single-process deployments."""

import copy
import threading
import uuid
from typing import Any, Callable, Dict, List, Optional, TypeVar

from ..errors import NotFoundError
from ..models import Original, Reviewer
from .base import DuplicateKeyError, ReviewerRepository, SongRepository

T = TypeVar("T")


class InMemorySongRepository(SongRepository):
    """Songs kept as serialized documents in a dict guarded by a lock.

    Documents go in and come out as copies so callers never share state
    with the store.
    """

    def __init__(self):
        super().__init__()
        self._documents: Dict[str, Dict[str, Any]] = {}
        self._by_original_id: Dict[str, str] = {}
        self._lock = threading.RLock()

    def get_by_id(self, id: str) -> Optional[Original]:
        with self._lock:
            document = self._documents.get(id)
            return Original.model_validate(copy.deepcopy(document)) if document else None

    def find_by(self, field: str, value: Any) -> List[Original]:
        with self._lock:
            if field == "original_id":
                record_id = self._by_original_id.get(value)
                documents = [self._documents[record_id]] if record_id else []
            else:
                documents = [doc for doc in self._documents.values() if doc.get(field) == value]
            return [Original.model_validate(copy.deepcopy(doc)) for doc in documents]

    def find_all(self) -> List[Original]:
        with self._lock:
            return [Original.model_validate(copy.deepcopy(doc)) for doc in self._documents.values()]

    def create(self, item: Original) -> Original:
        with self._lock:
            if item.original_id in self._by_original_id:
                raise DuplicateKeyError(
                    f"Original {item.original_id} already exists",
                    key="original_id",
                    value=item.original_id,
                )

            created = item.model_copy(deep=True)
            created.record_id = uuid.uuid4().hex
            if created.song_number is None:
                created.song_number = self._next_song_number(list(self._documents.values()))

            self._documents[created.record_id] = created.to_document()
            self._by_original_id[created.original_id] = created.record_id
            self.logger.debug(f"Created original {created.original_id} as {created.record_id}")
            return created

    def save(self, item: Original) -> Original:
        with self._lock:
            if item.record_id is None or item.record_id not in self._documents:
                return self.create(item)

            owner = self._by_original_id.get(item.original_id)
            if owner is not None and owner != item.record_id:
                raise DuplicateKeyError(
                    f"Original {item.original_id} already exists",
                    key="original_id",
                    value=item.original_id,
                )

            previous = self._documents[item.record_id]
            self._by_original_id.pop(previous["original_id"], None)
            self._documents[item.record_id] = item.to_document()
            self._by_original_id[item.original_id] = item.record_id
            return item.model_copy(deep=True)

    def update(self, id: str, mutator: Callable[[Original], T]) -> T:
        with self._lock:
            document = self._documents.get(id)
            if document is None:
                raise NotFoundError("Original not found", resource_type="original", resource_id=id)

            original = Original.model_validate(copy.deepcopy(document))
            result = mutator(original)
            # The store owns identity; a mutator cannot move a record
            original.record_id = id
            original.original_id = document["original_id"]
            self._documents[id] = original.to_document()
            return result


class InMemoryReviewerRepository(ReviewerRepository):
    """Reviewer names in insertion order."""

    def __init__(self, names: Optional[List[str]] = None):
        super().__init__()
        self._names: List[str] = []
        self._lock = threading.RLock()
        if names:
            self.ensure(names)

    def get_by_id(self, id: str) -> Optional[Reviewer]:
        with self._lock:
            return Reviewer(name=id) if id in self._names else None

    def find_all(self) -> List[Reviewer]:
        with self._lock:
            return [Reviewer(name=name) for name in self._names]

    def create(self, item: Reviewer) -> Reviewer:
        with self._lock:
            if item.name in self._names:
                raise DuplicateKeyError(
                    f"Reviewer {item.name} already exists", key="name", value=item.name
                )
            self._names.append(item.name)
            return Reviewer(name=item.name)
