"""Resolve free-text names to known reviewers."""

from typing import List, Optional

import jellyfish

from .base import BaseService


def normalize_name(name: str) -> str:
    return name.strip().lower()


class IdentityMatcher(BaseService):
    """Fuzzy lookup of a reviewer by name.

    The closest reviewer by Levenshtein distance wins if it is within
    ``match_threshold`` edits; otherwise the fallback bucket is returned.
    On equal distances the reviewer earlier in store order wins.
    """

    def match(self, name: str, reviewer_names: Optional[List[str]] = None) -> str:
        """Return the closest reviewer name or the fallback bucket.

        Args:
            name: Free-text name as typed by the reviewer
            reviewer_names: Reviewer names already loaded for this request.
                Read from the store when omitted.
        """
        if reviewer_names is None:
            reviewer_names = self.reviewers.names()

        normalized = normalize_name(name)
        best_match = self.config.fallback_bucket
        min_distance = None

        for reviewer_name in reviewer_names:
            distance = jellyfish.levenshtein_distance(normalized, normalize_name(reviewer_name))
            if distance > self.config.match_threshold:
                continue
            if min_distance is None or distance < min_distance:
                min_distance = distance
                best_match = reviewer_name

        self.logger.debug(
            f"Matched '{name}' to '{best_match}'",
            extra={"distance": min_distance, "candidates": len(reviewer_names)},
        )
        return best_match
