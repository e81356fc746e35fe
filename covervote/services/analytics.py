"""Summary statistics over the corpus or one reviewer's share of it."""

from typing import Iterable, List, Optional
from datetime import datetime, timezone

from ..models import DEFAULT_QUOTA, CorpusStats, LastPair, Original, ReviewerStats
from .base import BaseService


def _aware(moment: datetime) -> datetime:
    return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)


def calculate_stats(originals: Iterable[Original], quota: int = DEFAULT_QUOTA) -> CorpusStats:
    """Fold a set of originals into summary counts. Never mutates its input.

    An original is *fully rejected* when it has candidates and every one of
    them is decided as not-a-cover. It is *pending* when no candidate has a
    vote, which includes originals without candidates.
    """
    stats = CorpusStats()

    for original in originals:
        candidates = original.candidate_covers
        stats.total_originals += 1

        confirmed = len(original.confirmed_covers())
        if confirmed >= 1:
            stats.originals_with_at_least_1_cover += 1
        if confirmed >= quota:
            stats.originals_with_3_covers += 1
        stats.total_covers_found += confirmed

        stats.total_votes += sum(c.total_votes for c in candidates)

        if candidates and all(c.is_cover is False for c in candidates):
            stats.originals_fully_rejected += 1

        if all(c.total_votes == 0 for c in candidates):
            stats.originals_pending += 1

    return stats


def latest_vote(originals: Iterable[Original]) -> Optional[LastPair]:
    """The most recently voted pair, or None if nothing was voted on."""
    latest: Optional[LastPair] = None

    for original in originals:
        for candidate in original.candidate_covers:
            if candidate.vote_timestamp is None:
                continue
            voted_at = _aware(candidate.vote_timestamp)
            if latest is None or voted_at > latest.vote_timestamp:
                latest = LastPair(
                    original_title=original.original_title,
                    original_id=original.original_id,
                    candidate_title=candidate.title,
                    candidate_id=candidate.id,
                    is_cover=candidate.is_cover,
                    vote_timestamp=voted_at,
                )

    return latest


class AnalyticsService(BaseService):
    """Read-only analytics over the song store."""

    def global_stats(self) -> CorpusStats:
        return calculate_stats(self.songs.find_all(), self.config.quota)

    def reviewer_stats(self, name: str) -> ReviewerStats:
        """Statistics for one reviewer bucket, with its latest vote.

        Args:
            name: Exact bucket name as assigned to originals
        """
        originals: List[Original] = self.songs.find_by_assigned_user(name)
        stats = calculate_stats(originals, self.config.quota)
        last_pair = latest_vote(originals)

        return ReviewerStats(
            **stats.model_dump(),
            songs_assigned=len(originals),
            last_voted=last_pair.vote_timestamp if last_pair else None,
            last_pair=last_pair,
        )
