"""Review moderation state machine shared across models, services and schemas.

A review is in exactly one of three states. Stores keep the legacy pair of
optional flags ``(is_approved, is_hidden)``; ``ReviewState.from_flags`` is the
only place that pair is decoded:

- ``is_hidden is True``                      -> hidden
- ``is_approved`` (absent counts as True)    -> approved
- otherwise                                  -> pending

so a review carrying neither flag, written before moderation existed, is
approved. Transitions are idempotent and never lead back to pending. No
authorization happens here; callers check lesson ownership first.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Tuple

from ..core.enums import ModerationAction

ModerationFlags = Tuple[bool, bool]


class ReviewState(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    HIDDEN = "hidden"

    @classmethod
    def from_flags(cls, is_approved: Optional[bool], is_hidden: Optional[bool]) -> "ReviewState":
        if is_hidden:
            return cls.HIDDEN
        if is_approved is None or is_approved:
            return cls.APPROVED
        return cls.PENDING

    def to_flags(self) -> ModerationFlags:
        if self is ReviewState.HIDDEN:
            return (False, True)
        if self is ReviewState.APPROVED:
            return (True, False)
        return (False, False)

    @property
    def is_public(self) -> bool:
        return self is ReviewState.APPROVED


# Flags written for reviews submitted after moderation was introduced.
NEW_REVIEW_FLAGS: ModerationFlags = ReviewState.PENDING.to_flags()


def approve(state: ReviewState) -> ReviewState:
    return ReviewState.APPROVED


def hide(state: ReviewState) -> ReviewState:
    return ReviewState.HIDDEN


_TRANSITIONS = {
    ModerationAction.APPROVE: approve,
    ModerationAction.HIDE: hide,
}


def apply_action(state: ReviewState, action: ModerationAction | str) -> ReviewState:
    """Return the state reached by ``action``; raises ValueError for unknown actions."""
    return _TRANSITIONS[ModerationAction(action)](state)
