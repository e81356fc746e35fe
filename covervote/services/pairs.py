"""Select the next undecided pair for a reviewer."""

from typing import Iterable, Optional

from ..logging_config import log_context
from ..models import DEFAULT_QUOTA, Original, Pair
from .base import BaseService


def select_pair(originals: Iterable[Original], quota: int = DEFAULT_QUOTA) -> Optional[Pair]:
    """First undecided candidate of the first original still under quota.

    Originals that already hold ``quota`` confirmed covers are complete;
    their remaining undecided candidates are never surfaced.
    """
    for original in originals:
        if original.confirmed_count >= quota:
            continue

        for index, candidate in enumerate(original.candidate_covers):
            if candidate.is_undecided:
                return Pair(
                    record_id=original.record_id,
                    original_id=original.original_id,
                    original_title=original.original_title,
                    song_number=original.song_number,
                    candidate=candidate,
                    candidate_index=index,
                )

    return None


class PairSelector(BaseService):
    """Stateless, idempotent pair lookup over a reviewer's originals."""

    def next_pair(self, user: str) -> Optional[Pair]:
        """Return the next pair for ``user``, or None when everything is validated.

        Args:
            user: Reviewer bucket name (as returned by login)
        """
        with log_context(reviewer=user):
            originals = self.songs.find_by_assigned_user(user)
            pair = select_pair(originals, self.config.quota)

            if pair is None:
                self.logger.debug("No pairs left", extra={"originals": len(originals)})
        return pair
