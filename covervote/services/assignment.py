"""Assign newly ingested originals to a reviewer bucket."""

import random
from typing import List, Optional

from ..models import OTHERS_BUCKET


class AssignmentDistributor:
    """Uniform random choice over all reviewers plus the fallback bucket.

    No attempt is made to balance existing backlog.
    """

    def __init__(self, fallback_bucket: str = OTHERS_BUCKET, rng: Optional[random.Random] = None):
        self.fallback_bucket = fallback_bucket
        self.rng = rng or random.Random()

    def buckets(self, reviewer_names: List[str]) -> List[str]:
        return [*reviewer_names, self.fallback_bucket]

    def assign(self, reviewer_names: List[str]) -> str:
        """Pick the bucket for one new original."""
        return self.rng.choice(self.buckets(reviewer_names))
