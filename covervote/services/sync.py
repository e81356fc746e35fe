"""Merge scraped batches of originals and candidates into the store."""

from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
from enum import Enum
from dataclasses import dataclass, field

from pydantic import ValidationError as PydanticValidationError

from ..errors import ValidationError
from ..logging_config import Timer, log_performance
from ..models import Candidate, Original, ReviewConfig, SongRecord
from ..repositories.base import DuplicateKeyError, ReviewerRepository, SongRepository
from .assignment import AssignmentDistributor
from .base import BaseService


class SyncOutcome(str, Enum):
    """What happened to one batch entry."""
    INSERTED = "inserted"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


@dataclass
class SyncResult:
    """Result of merging one batch."""
    started_at: datetime
    completed_at: Optional[datetime] = None
    total_entries: int = 0
    inserted_count: int = 0
    updated_count: int = 0
    unchanged_count: int = 0
    rejected_count: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """The batch ran to completion. Rejected entries do not fail it."""
        return self.completed_at is not None

    @property
    def message(self) -> str:
        message = f"Sync complete. Inserted: {self.inserted_count}, Updated: {self.updated_count}"
        if self.rejected_count:
            message += f", Rejected: {self.rejected_count}"
        return message

    @property
    def duration(self) -> Optional[float]:
        """Calculate duration in seconds."""
        if self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def record(self, outcome: SyncOutcome):
        if outcome == SyncOutcome.INSERTED:
            self.inserted_count += 1
        elif outcome == SyncOutcome.UPDATED:
            self.updated_count += 1
        elif outcome == SyncOutcome.UNCHANGED:
            self.unchanged_count += 1

    def reject(self, index: int, original_id: Any, message: str):
        self.rejected_count += 1
        self.errors.append({"index": index, "original_id": original_id, "error": message})

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "total_entries": self.total_entries,
            "inserted": self.inserted_count,
            "updated": self.updated_count,
            "unchanged": self.unchanged_count,
            "rejected": self.rejected_count,
            "duration": self.duration,
            "errors": self.errors,
        }


def merge_candidates(original: Original, incoming: List[Candidate]) -> List[Candidate]:
    """Append the incoming candidates whose id the original does not hold yet.

    Existing candidates and their vote state are left untouched.

    Returns:
        The candidates that were appended
    """
    existing_ids = original.candidate_ids()
    novel = [candidate for candidate in incoming if candidate.id not in existing_ids]
    original.candidate_covers.extend(novel)
    return novel


def _describe(error: PydanticValidationError) -> str:
    parts = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"]) or "entry"
        parts.append(f"{location}: {detail['msg']}")
    return "; ".join(parts)


class SyncService(BaseService):
    """Reconciles scraped batches against stored originals.

    Each (original_id, candidate id) pair is inserted at most once. New
    originals get a reviewer bucket and a song number exactly once.
    """

    def __init__(
        self,
        songs: SongRepository,
        reviewers: ReviewerRepository,
        config: Optional[ReviewConfig] = None,
        distributor: Optional[AssignmentDistributor] = None,
    ):
        super().__init__(songs=songs, reviewers=reviewers, config=config)
        self.distributor = distributor or AssignmentDistributor(self.config.fallback_bucket)

    def sync(self, songs: Any) -> SyncResult:
        """Merge a batch of scraped song entries.

        Malformed entries are rejected one by one; the rest of the batch
        still runs. Store failures abort the batch.

        Args:
            songs: List of raw entries as handed over by the scraper

        Raises:
            ValidationError: If songs is not a list
        """
        if not isinstance(songs, list):
            raise ValidationError(
                "Invalid data format. 'songs' array required.", field_name="songs"
            )

        result = SyncResult(started_at=datetime.now(timezone.utc), total_entries=len(songs))
        # Reviewers are read once for the whole batch
        reviewer_names = self.reviewers.names()

        with Timer() as timer:
            for index, entry in enumerate(songs):
                try:
                    record = SongRecord.model_validate(entry)
                except PydanticValidationError as e:
                    original_id = entry.get("original_id") if isinstance(entry, dict) else None
                    self.logger.warning(
                        f"Rejected sync entry {index}",
                        extra={"index": index, "original_id": original_id},
                    )
                    result.reject(index, original_id, _describe(e))
                    continue

                result.record(self.sync_entry(record, reviewer_names))

        result.completed_at = datetime.now(timezone.utc)
        log_performance(
            __name__, "sync", timer.duration_ms,
            inserted=result.inserted_count,
            updated=result.updated_count,
            rejected=result.rejected_count,
        )
        return result

    def sync_entry(self, record: SongRecord, reviewer_names: List[str]) -> SyncOutcome:
        """Insert or merge one validated entry."""
        incoming = record.unique_candidates()
        existing = self.songs.find_by_original_id(record.original_id)

        if existing is None:
            original = Original(
                original_id=record.original_id,
                original_title=record.original_title,
                assigned_user=self.distributor.assign(reviewer_names),
                candidate_covers=incoming,
            )
            try:
                created = self.songs.create(original)
            except DuplicateKeyError:
                # A concurrent sync created it first; merge into that one
                existing = self.songs.find_by_original_id(record.original_id)
                if existing is None:
                    raise
            else:
                self.log_operation(
                    "insert_original",
                    original_id=created.original_id,
                    assigned_user=created.assigned_user,
                    song_number=created.song_number,
                    candidates=len(created.candidate_covers),
                )
                return SyncOutcome.INSERTED

        appended = self.songs.update(
            existing.record_id, lambda original: merge_candidates(original, incoming)
        )
        if not appended:
            return SyncOutcome.UNCHANGED

        self.log_operation(
            "append_candidates",
            original_id=record.original_id,
            appended=[candidate.id for candidate in appended],
        )
        return SyncOutcome.UPDATED
