"""Wiring of repositories and services into one engine instance."""

import random
from datetime import datetime
from typing import Callable, Optional

from .logging_config import log_event
from .models import Config
from .repositories import Repositories, create_repositories
from .services import (
    AnalyticsService,
    AssignmentDistributor,
    IdentityMatcher,
    PairSelector,
    ReportService,
    SyncService,
    VoteService,
)
from .services.votes import utcnow


class Engine:
    """All engine operations over one pair of stores."""

    def __init__(
        self,
        repositories: Repositories,
        config: Optional[Config] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.config = config or Config()
        self.repositories = repositories
        review = self.config.review
        songs, reviewers = repositories.songs, repositories.reviewers

        self.identity = IdentityMatcher(reviewers=reviewers, config=review)
        self.sync = SyncService(
            songs=songs,
            reviewers=reviewers,
            config=review,
            distributor=AssignmentDistributor(review.fallback_bucket, rng=rng),
        )
        self.pairs = PairSelector(songs=songs, config=review)
        self.votes = VoteService(songs=songs, config=review, clock=clock)
        self.analytics = AnalyticsService(songs=songs, config=review)
        self.reports = ReportService(songs=songs, config=review)

    @classmethod
    def from_config(cls, config: Config) -> "Engine":
        """Create stores for the configured backend and seed the reviewer set."""
        repositories = create_repositories(config.store)
        added = repositories.reviewers.ensure(config.review.reviewers)
        if added:
            log_event(__name__, "reviewers_seeded", reviewers=[reviewer.name for reviewer in added])
        return cls(repositories, config)

    def close(self):
        self.repositories.close()
