import pytest

from instructor_ranking.core.enums import ModerationAction
from instructor_ranking.domain.review_moderation import (
    NEW_REVIEW_FLAGS,
    ReviewState,
    apply_action,
    approve,
    hide,
)
from instructor_ranking.schemas.lesson import ReviewRecord


@pytest.mark.parametrize(
    "is_approved, is_hidden, state",
    [
        (None, None, ReviewState.APPROVED),
        (True, None, ReviewState.APPROVED),
        (None, False, ReviewState.APPROVED),
        (True, False, ReviewState.APPROVED),
        (False, None, ReviewState.PENDING),
        (False, False, ReviewState.PENDING),
        (None, True, ReviewState.HIDDEN),
        (True, True, ReviewState.HIDDEN),
        (False, True, ReviewState.HIDDEN),
    ],
)
def test_decoding_flags(is_approved, is_hidden, state):
    assert ReviewState.from_flags(is_approved, is_hidden) is state


def test_review_without_flags_is_approved():
    review = ReviewRecord(rating=5)
    assert review.state is ReviewState.APPROVED
    assert review.state.is_public


def test_new_reviews_start_pending():
    assert ReviewState.from_flags(*NEW_REVIEW_FLAGS) is ReviewState.PENDING


def test_transitions():
    assert hide(approve(ReviewState.PENDING)) is ReviewState.HIDDEN
    assert approve(hide(ReviewState.PENDING)) is ReviewState.APPROVED
    # idempotent
    assert approve(ReviewState.APPROVED) is ReviewState.APPROVED
    assert hide(ReviewState.HIDDEN) is ReviewState.HIDDEN


def test_flags_round_trip_through_decoder():
    for state in ReviewState:
        assert ReviewState.from_flags(*state.to_flags()) is state


def test_apply_action_accepts_strings_and_rejects_unknown():
    assert apply_action(ReviewState.PENDING, "approve") is ReviewState.APPROVED
    assert apply_action(ReviewState.APPROVED, ModerationAction.HIDE) is ReviewState.HIDDEN
    with pytest.raises(ValueError):
        apply_action(ReviewState.PENDING, "delete")


def test_only_approved_is_public():
    assert [s for s in ReviewState if s.is_public] == [ReviewState.APPROVED]
