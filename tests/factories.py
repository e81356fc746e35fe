"""Builders for originals and candidates used across the tests."""

from datetime import datetime, timedelta, timezone
from typing import List, Optional

from covervote.models import Candidate, Original


REVIEWERS = ["Ann", "Bob", "Carla"]


class FakeClock:
    """Deterministic clock advancing one second per reading."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


def make_candidate(id: str, is_cover: Optional[bool] = None, yes: int = 0, no: int = 0,
                   voted_at: Optional[datetime] = None) -> Candidate:
    return Candidate(
        id=id,
        title=f"Track {id}",
        uploader="uploader",
        url=f"https://example.com/{id}",
        is_cover_votes=yes,
        is_not_cover_votes=no,
        is_cover=is_cover,
        vote_timestamp=voted_at,
    )


def make_original(original_id: str, candidates: Optional[List[Candidate]] = None,
                  assigned_user: str = "Ann", title: Optional[str] = None) -> Original:
    return Original(
        original_id=original_id,
        original_title=title or f"Song {original_id}",
        assigned_user=assigned_user,
        candidate_covers=candidates or [],
    )


def confirmed(id: str) -> Candidate:
    return make_candidate(id, is_cover=True, yes=1)


def rejected(id: str) -> Candidate:
    return make_candidate(id, is_cover=False, no=1)


def undecided(id: str) -> Candidate:
    return make_candidate(id)


def scraped_song(original_id: str, *candidate_ids: str, title: Optional[str] = None) -> dict:
    """A sync batch entry the way the scraper sends it."""
    return {
        "original_id": original_id,
        "original_title": title or f"Song {original_id}",
        "candidate_covers": [
            {"id": cid, "title": f"Track {cid}", "uploader": "uploader",
             "url": f"https://example.com/{cid}"}
            for cid in candidate_ids
        ],
    }
