"""Tests for merging scraped batches into the store."""

import random
from unittest.mock import patch

import pytest

from covervote.errors import StoreError, ValidationError
from covervote.models import SongRecord
from covervote.repositories import InMemoryReviewerRepository
from covervote.services import (
    AssignmentDistributor,
    SyncOutcome,
    SyncService,
    VoteService,
    merge_candidates,
)

from factories import REVIEWERS, make_original, rejected, scraped_song, undecided


@pytest.fixture
def sync_service(song_repo, reviewer_repo):
    return SyncService(
        songs=song_repo,
        reviewers=reviewer_repo,
        distributor=AssignmentDistributor(rng=random.Random(11)),
    )


def song_record(original_id, *ids):
    return SongRecord.model_validate(scraped_song(original_id, *ids))


def candidate_ids(original):
    return [candidate.id for candidate in original.candidate_covers]


class TestMergeCandidates:

    def test_appends_only_novel_ids(self):
        original = make_original("A", [rejected("c1"), undecided("c2")])

        appended = merge_candidates(original, [undecided("c2"), undecided("c3")])

        assert [c.id for c in appended] == ["c3"]
        assert candidate_ids(original) == ["c1", "c2", "c3"]
        assert original.candidate_covers[0].is_cover is False

    def test_nothing_novel(self):
        original = make_original("A", [undecided("c1")])
        assert merge_candidates(original, [undecided("c1")]) == []
        assert candidate_ids(original) == ["c1"]


class TestSyncService:

    def test_inserts_new_originals(self, sync_service, song_repo):
        result = sync_service.sync([scraped_song("A", "c1", "c2"), scraped_song("B", "c3")])

        assert result.success
        assert result.inserted_count == 2
        assert result.updated_count == 0
        assert result.message == "Sync complete. Inserted: 2, Updated: 0"

        stored = song_repo.find_by_original_id("A")
        assert stored.original_title == "Song A"
        assert candidate_ids(stored) == ["c1", "c2"]
        assert stored.assigned_user in REVIEWERS + ["others"]
        assert all(c.is_undecided and c.total_votes == 0 for c in stored.candidate_covers)

    def test_song_numbers_follow_insertion(self, sync_service, song_repo):
        sync_service.sync([scraped_song("A"), scraped_song("B")])
        sync_service.sync([scraped_song("C"), scraped_song("A", "c9")])

        numbers = {o.original_id: o.song_number for o in song_repo.find_all()}
        assert numbers == {"A": 1, "B": 2, "C": 3}

    def test_assignment_uses_distributor(self, song_repo, reviewer_repo):
        service = SyncService(
            songs=song_repo,
            reviewers=reviewer_repo,
            distributor=AssignmentDistributor(rng=random.Random(5)),
        )
        reference = random.Random(5)

        service.sync([scraped_song(str(n)) for n in range(8)])

        expected = [reference.choice(REVIEWERS + ["others"]) for _ in range(8)]
        assert [o.assigned_user for o in song_repo.find_all()] == expected

    def test_no_reviewers_assigns_others(self, song_repo):
        service = SyncService(songs=song_repo, reviewers=InMemoryReviewerRepository())
        service.sync([scraped_song("A"), scraped_song("B")])

        assert {o.assigned_user for o in song_repo.find_all()} == {"others"}

    def test_resync_keeps_assignment_and_number(self, sync_service, song_repo):
        sync_service.sync([scraped_song("A", "c1")])
        before = song_repo.find_by_original_id("A")

        for _ in range(5):
            sync_service.sync([scraped_song("A", "c1", "c2", title="Renamed")])

        after = song_repo.find_by_original_id("A")
        assert after.assigned_user == before.assigned_user
        assert after.song_number == before.song_number
        assert after.record_id == before.record_id
        assert after.original_title == "Song A"

    def test_same_batch_twice_is_idempotent(self, sync_service, song_repo):
        batch = [scraped_song("A", "c1", "c2"), scraped_song("B", "c3")]
        sync_service.sync(batch)

        result = sync_service.sync(batch)

        assert result.inserted_count == 0
        assert result.updated_count == 0
        assert result.unchanged_count == 2
        assert [candidate_ids(o) for o in song_repo.find_all()] == [["c1", "c2"], ["c3"]]

    def test_repeated_candidate_in_entry_inserted_once(self, sync_service, song_repo):
        sync_service.sync([scraped_song("A", "c1", "c1", "c2")])
        sync_service.sync([scraped_song("A", "c3", "c3")])

        assert candidate_ids(song_repo.find_by_original_id("A")) == ["c1", "c2", "c3"]

    def test_incoming_vote_fields_are_ignored(self, sync_service, song_repo):
        entry = scraped_song("A", "c1")
        entry["candidate_covers"][0].update(
            {"isCover": True, "is_cover_votes": 5, "is_not_cover_votes": 1}
        )

        sync_service.sync([entry])

        candidate = song_repo.find_by_original_id("A").candidate_covers[0]
        assert candidate.is_cover is None
        assert candidate.total_votes == 0

    def test_numeric_ids_are_coerced(self, sync_service, song_repo):
        sync_service.sync([{"original_id": 42, "candidate_covers": [{"id": 7}]}])

        stored = song_repo.find_by_original_id("42")
        assert candidate_ids(stored) == ["7"]

    def test_malformed_entries_rejected_individually(self, sync_service, song_repo):
        result = sync_service.sync([
            {"original_title": "no id"},
            {"original_id": "B", "candidate_covers": [{"title": "candidate without id"}]},
            {"original_id": "C"},
            "not an object",
            {"original_id": ""},
        ])

        assert result.success
        assert result.inserted_count == 1
        assert result.rejected_count == 4
        assert [error["index"] for error in result.errors] == [0, 1, 3, 4]
        assert result.errors[1]["original_id"] == "B"
        assert result.errors[2]["original_id"] is None
        assert result.message == "Sync complete. Inserted: 1, Updated: 0, Rejected: 4"
        assert [o.original_id for o in song_repo.find_all()] == ["C"]
        assert song_repo.find_by_original_id("C").candidate_covers == []

    def test_missing_candidate_list_keeps_existing(self, sync_service, song_repo):
        sync_service.sync([scraped_song("A", "c1")])

        result = sync_service.sync([{"original_id": "A", "candidate_covers": None}])

        assert result.rejected_count == 0
        assert candidate_ids(song_repo.find_by_original_id("A")) == ["c1"]

    @pytest.mark.parametrize("songs", [None, {"original_id": "A"}, "A"])
    def test_non_list_batch_is_invalid(self, sync_service, songs):
        with pytest.raises(ValidationError) as exc_info:
            sync_service.sync(songs)
        assert exc_info.value.message == "Invalid data format. 'songs' array required."

    def test_empty_batch(self, sync_service):
        result = sync_service.sync([])
        assert result.success
        assert result.total_entries == 0
        assert result.message == "Sync complete. Inserted: 0, Updated: 0"

    def test_reviewers_read_once_per_batch(self, sync_service, reviewer_repo):
        with patch.object(reviewer_repo, "names", wraps=reviewer_repo.names) as names:
            sync_service.sync([scraped_song(str(n)) for n in range(4)])
        assert names.call_count == 1

    def test_lost_insert_race_merges_into_winner(self, sync_service, song_repo):
        sync_service.sync([scraped_song("A", "c1")])
        winner = song_repo.find_by_original_id("A")

        # The first lookup misses, as if another sync inserted "A" in between
        with patch.object(song_repo, "find_by_original_id", side_effect=[None, winner]):
            outcome = sync_service.sync_entry(
                song_record("A", "c1", "c2"), REVIEWERS
            )

        assert outcome == SyncOutcome.UPDATED
        assert len(song_repo.find_all()) == 1
        assert candidate_ids(song_repo.find_by_original_id("A")) == ["c1", "c2"]

    def test_store_failure_aborts_batch(self, sync_service, song_repo):
        with patch.object(song_repo, "create", side_effect=StoreError("disk full")):
            with pytest.raises(StoreError):
                sync_service.sync([scraped_song("A")])
        assert song_repo.find_all() == []

    def test_result_to_dict(self, sync_service):
        result = sync_service.sync([scraped_song("A"), {"bad": True}])
        data = result.to_dict()

        assert data["inserted"] == 1
        assert data["rejected"] == 1
        assert data["completed_at"] is not None
        assert data["duration"] >= 0
        assert data["errors"][0]["index"] == 1


class TestSyncAcrossBackends:
    """The merge scenarios hold for every store backend."""

    def test_merge_keeps_votes_of_known_candidates(self, repositories, clock):
        sync = SyncService(songs=repositories.songs, reviewers=repositories.reviewers)
        votes = VoteService(songs=repositories.songs, clock=clock)

        sync.sync([scraped_song("A", "c1", "c2")])
        original = repositories.songs.find_by_original_id("A")
        votes.cast_vote(original.record_id, 1, True)

        result = sync.sync([scraped_song("A", "c2", "c3")])

        assert result.updated_count == 1
        merged = repositories.songs.find_by_original_id("A")
        assert candidate_ids(merged) == ["c1", "c2", "c3"]
        c2 = merged.candidate_covers[1]
        assert c2.is_cover is True
        assert c2.is_cover_votes == 1
        assert merged.candidate_covers[2].is_undecided

    def test_store_order_is_insertion_order(self, repositories):
        sync = SyncService(songs=repositories.songs, reviewers=repositories.reviewers)
        sync.sync([scraped_song(oid) for oid in ["m", "a", "z", "b"]])

        originals = repositories.songs.find_all()
        assert [o.original_id for o in originals] == ["m", "a", "z", "b"]
        assert [o.song_number for o in originals] == [1, 2, 3, 4]
        assert {o.assigned_user for o in originals} == {"others"}
