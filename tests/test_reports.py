"""Tests for vote listings and the final list."""

import pytest

from covervote.models import VotedPair
from covervote.services import ReportService

from factories import confirmed, make_candidate, make_original, rejected, undecided


@pytest.fixture
def reports(song_repo):
    song_repo.create(make_original("A", [confirmed("a1"), undecided("a2"), rejected("a3")],
                                   assigned_user="Bob"))
    song_repo.create(make_original("B", [undecided("b1")]))
    song_repo.create(make_original("C", [make_candidate("c1", is_cover=True, yes=2, no=1)],
                                   assigned_user="others"))
    return ReportService(songs=song_repo)


class TestReportService:

    def test_voted_pairs_lists_decided_candidates(self, reports):
        assert reports.voted_pairs() == [
            VotedPair(user="Bob", original_title="Song A", candidate_title="Track a1",
                      candidate_id="a1", is_cover=True, votes_yes=1, votes_no=0),
            VotedPair(user="Bob", original_title="Song A", candidate_title="Track a3",
                      candidate_id="a3", is_cover=False, votes_yes=0, votes_no=1),
            VotedPair(user="others", original_title="Song C", candidate_title="Track c1",
                      candidate_id="c1", is_cover=True, votes_yes=2, votes_no=1),
        ]

    def test_final_list_keeps_confirmed_covers_only(self, reports):
        final = reports.final_list()

        assert [o.original_id for o in final] == ["A", "C"]
        assert [c.id for c in final[0].candidate_covers] == ["a1"]
        assert final[0].song_number == 1
        assert final[0].record_id is not None

    def test_final_list_does_not_touch_store(self, reports, song_repo):
        reports.final_list()
        stored = song_repo.find_by_original_id("A")
        assert [c.id for c in stored.candidate_covers] == ["a1", "a2", "a3"]

    def test_all_originals_in_store_order(self, reports):
        assert [o.original_id for o in reports.all_originals()] == ["A", "B", "C"]

    def test_empty_store(self, song_repo):
        reports = ReportService(songs=song_repo)
        assert reports.voted_pairs() == []
        assert reports.final_list() == []
