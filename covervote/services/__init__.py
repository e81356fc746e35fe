"""Service layer: the validation and sync engine."""

from .base import BaseService
from .identity import IdentityMatcher, normalize_name
from .assignment import AssignmentDistributor
from .sync import SyncService, SyncResult, SyncOutcome, merge_candidates
from .pairs import PairSelector, select_pair
from .votes import VoteService, apply_vote, resolve_candidate
from .analytics import AnalyticsService, calculate_stats, latest_vote
from .reports import ReportService

__all__ = [
    "BaseService",
    "IdentityMatcher",
    "normalize_name",
    "AssignmentDistributor",
    "SyncService",
    "SyncResult",
    "SyncOutcome",
    "merge_candidates",
    "PairSelector",
    "select_pair",
    "VoteService",
    "apply_vote",
    "resolve_candidate",
    "AnalyticsService",
    "calculate_stats",
    "latest_vote",
    "ReportService",
]
