"""Vote tally state machine.

A candidate starts undecided. Every vote increments one counter and
re-derives ``isCover`` as ``is_cover_votes > is_not_cover_votes``, so a tie
reads as not-a-cover and later votes can flip the decision either way.
"""

from typing import Callable, Optional
from datetime import datetime, timezone

from ..errors import NotFoundError, ValidationError
from ..models import Candidate, Original, ReviewConfig
from ..repositories.base import SongRepository
from .base import BaseService


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def apply_vote(candidate: Candidate, is_cover: bool, at: Optional[datetime] = None) -> Candidate:
    """Apply one vote to a candidate in place.

    Args:
        candidate: Candidate to update
        is_cover: The reviewer's verdict
        at: Vote time, defaults to now
    """
    if not candidate.is_cover_votes:
        candidate.is_cover_votes = 0
    if not candidate.is_not_cover_votes:
        candidate.is_not_cover_votes = 0

    if is_cover:
        candidate.is_cover_votes += 1
    else:
        candidate.is_not_cover_votes += 1

    candidate.is_cover = candidate.is_cover_votes > candidate.is_not_cover_votes
    candidate.vote_timestamp = at or utcnow()
    return candidate


def resolve_candidate(
    original: Original,
    candidate_index: Optional[int] = None,
    candidate_id: Optional[str] = None,
) -> int:
    """Find the position of the addressed candidate.

    A candidate id wins over a position when both are given.

    Raises:
        NotFoundError: If the id is unknown or the position out of range
    """
    if candidate_id is not None:
        found = original.find_candidate(candidate_id)
        if found is None:
            raise NotFoundError(
                "Pair not found", resource_type="candidate", resource_id=candidate_id
            )
        return found[0]

    if candidate_index is None or not 0 <= candidate_index < len(original.candidate_covers):
        raise NotFoundError(
            "Pair not found", resource_type="candidate", resource_id=candidate_index
        )
    return candidate_index


class VoteService(BaseService):
    """Records reviewer votes against stored candidates."""

    def __init__(
        self,
        songs: SongRepository,
        config: Optional[ReviewConfig] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        super().__init__(songs=songs, config=config)
        self.clock = clock

    def cast_vote(
        self,
        record_id: str,
        candidate_index: Optional[int],
        is_cover: bool,
        candidate_id: Optional[str] = None,
    ) -> Candidate:
        """Count one vote on a candidate.

        The counters are read and incremented inside one atomic store
        update, so concurrent votes on the same original are not lost.

        Args:
            record_id: Store id of the original
            candidate_index: Position of the candidate in the original
            is_cover: The reviewer's verdict
            candidate_id: Optional candidate id, preferred over the position

        Returns:
            The candidate as stored after the vote

        Raises:
            ValidationError: If the original or candidate is not addressed
            NotFoundError: If the original or candidate does not exist
        """
        if not record_id:
            raise ValidationError("original_index required", field_name="original_index")
        if candidate_index is None and candidate_id is None:
            raise ValidationError("candidate_index required", field_name="candidate_index")

        def vote(original: Original) -> Candidate:
            position = resolve_candidate(original, candidate_index, candidate_id)
            candidate = apply_vote(original.candidate_covers[position], is_cover, self.clock())
            return candidate.model_copy()

        try:
            candidate = self.songs.update(record_id, vote)
        except NotFoundError as e:
            if e.resource_type != "original":
                raise
            # Same answer for a missing song and a missing candidate
            raise NotFoundError("Pair not found", resource_type="original", resource_id=record_id) from e

        self.log_operation(
            "vote",
            record_id=record_id,
            candidate_id=candidate.id,
            is_cover=bool(is_cover),
            votes_yes=candidate.is_cover_votes,
            votes_no=candidate.is_not_cover_votes,
        )
        return candidate
