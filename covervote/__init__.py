"""Collaborative validation of scraped cover candidates.

This package provides:
- Fuzzy identification of reviewers and random assignment of new songs
- Duplicate-free merging of scraped candidate batches
- Pair selection and majority-vote tallies per candidate
- Corpus and per-reviewer analytics
"""

__version__ = "1.0.0"

from .models import Candidate, Original, Pair, Reviewer, CorpusStats, ReviewerStats
from .config import ConfigManager
from .engine import Engine

__all__ = [
    "Candidate",
    "Original",
    "Pair",
    "Reviewer",
    "CorpusStats",
    "ReviewerStats",
    "ConfigManager",
    "Engine",
]
