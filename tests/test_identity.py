"""Tests for reviewer identification."""

from unittest.mock import patch

import pytest

from covervote.models import ReviewConfig
from covervote.repositories import InMemoryReviewerRepository
from covervote.services import IdentityMatcher


@pytest.fixture
def matcher(reviewer_repo):
    return IdentityMatcher(reviewers=reviewer_repo)


class TestIdentityMatcher:
    """Fuzzy matching of typed names to reviewers."""

    def test_exact_match(self, matcher):
        assert matcher.match("Ann") == "Ann"

    def test_input_is_trimmed_and_case_folded(self, matcher):
        assert matcher.match("  cARLA  ") == "Carla"

    def test_returns_stored_casing(self):
        matcher = IdentityMatcher(reviewers=InMemoryReviewerRepository(["McKenzie"]))
        assert matcher.match("mckenzie") == "McKenzie"

    @pytest.mark.parametrize("typed", ["Anne", "Annie", "An", "Amn", "nn"])
    def test_within_two_edits_matches(self, matcher, typed):
        assert matcher.match(typed) == "Ann"

    @pytest.mark.parametrize("typed", ["Annies", "Anabel", "Xyzzy"])
    def test_three_or_more_edits_falls_back(self, matcher, typed):
        assert matcher.match(typed) == "others"

    def test_boundary_two_versus_three_edits(self):
        matcher = IdentityMatcher(reviewers=InMemoryReviewerRepository(["Roberta"]))
        assert matcher.match("Robert") == "Roberta"  # 1 edit
        assert matcher.match("Rober") == "Roberta"  # 2 edits
        assert matcher.match("Robe") == "others"  # 3 edits

    def test_closest_reviewer_wins(self):
        matcher = IdentityMatcher(reviewers=InMemoryReviewerRepository(["Marta", "Mark"]))
        assert matcher.match("Mark") == "Mark"  # Marta is 2 edits away, Mark 0
        assert matcher.match("Marka") == "Marta"  # both 1 edit away, first wins

    def test_tie_resolves_to_first_in_store_order(self):
        first = IdentityMatcher(reviewers=InMemoryReviewerRepository(["Jon", "Jan"]))
        second = IdentityMatcher(reviewers=InMemoryReviewerRepository(["Jan", "Jon"]))

        assert first.match("jen") == "Jon"
        assert second.match("jen") == "Jan"

    def test_empty_input_falls_back(self, matcher):
        assert matcher.match("") == "others"

    def test_empty_input_can_match_short_names(self):
        matcher = IdentityMatcher(reviewers=InMemoryReviewerRepository(["Al"]))
        assert matcher.match("   ") == "Al"

    def test_no_reviewers_falls_back(self):
        matcher = IdentityMatcher(reviewers=InMemoryReviewerRepository())
        assert matcher.match("Ann") == "others"

    def test_configured_threshold_and_bucket(self, reviewer_repo):
        strict = IdentityMatcher(
            reviewers=reviewer_repo,
            config=ReviewConfig(match_threshold=0, fallback_bucket="unassigned"),
        )
        assert strict.match("ann") == "Ann"
        assert strict.match("Anne") == "unassigned"

    def test_preloaded_names_skip_the_store(self, matcher, reviewer_repo):
        with patch.object(reviewer_repo, "names") as names:
            assert matcher.match("bob", reviewer_names=["Bob"]) == "Bob"
        names.assert_not_called()

    def test_reads_reviewers_on_every_call(self, matcher, reviewer_repo):
        assert matcher.match("Dmitri") == "others"
        reviewer_repo.ensure(["Dmitri"])
        assert matcher.match("Dmitri") == "Dmitri"
