"""Read-side listings of votes and confirmed covers."""

from typing import List

from ..models import Original, VotedPair
from .base import BaseService


class ReportService(BaseService):
    """Listings exported to reviewers and downstream consumers."""

    def voted_pairs(self) -> List[VotedPair]:
        """Every candidate that has been decided, with its tally."""
        pairs = []
        for original in self.songs.find_all():
            for candidate in original.candidate_covers:
                if candidate.is_undecided:
                    continue
                pairs.append(
                    VotedPair(
                        user=original.assigned_user,
                        original_title=original.original_title,
                        candidate_title=candidate.title,
                        candidate_id=candidate.id,
                        is_cover=candidate.is_cover,
                        votes_yes=candidate.is_cover_votes,
                        votes_no=candidate.is_not_cover_votes,
                    )
                )
        return pairs

    def final_list(self) -> List[Original]:
        """Originals with at least one confirmed cover, reduced to those covers."""
        final = []
        for original in self.songs.find_all():
            confirmed = original.confirmed_covers()
            if not confirmed:
                continue
            final.append(original.model_copy(update={"candidate_covers": confirmed}))
        return final

    def all_originals(self) -> List[Original]:
        """Full dump of the store in store order."""
        return self.songs.find_all()
