"""Events emitted by the change-mutation service, one per state-changing operation.

Each event is a plain frozen dataclass; the rule engine dispatches on the
event class. Every event carries the acting account and may carry explicit
attention set instructions supplied by the user.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from attnset_core.models import ChangeStatus, ReviewerState


@dataclass(frozen=True)
class AttentionSetInput:
    """A user's explicit request to add or remove one account."""

    account: str
    reason: str


@dataclass(frozen=True)
class Instructions:
    adds: tuple[AttentionSetInput, ...] = ()
    removes: tuple[AttentionSetInput, ...] = ()
    # Skips the automatic rules for this event; explicit adds/removes still apply.
    block_automatic_rules: bool = False

    def is_empty(self) -> bool:
        return not self.adds and not self.removes


NO_INSTRUCTIONS = Instructions()


@dataclass(frozen=True)
class ReviewerAdded:
    actor: str
    account: str
    state: ReviewerState = ReviewerState.REVIEWER
    previous_state: ReviewerState | None = None  # None: account was not on the change before
    instructions: Instructions = NO_INSTRUCTIONS


@dataclass(frozen=True)
class ReviewerOrCcRemoved:
    actor: str
    account: str
    instructions: Instructions = NO_INSTRUCTIONS


@dataclass(frozen=True)
class VoteDeleted:
    actor: str
    account: str  # owner of the deleted vote
    label: str = ""
    instructions: Instructions = NO_INSTRUCTIONS


@dataclass(frozen=True)
class Replied:
    """A reply: any combination of message, votes and inline comments.

    ``comment_refs`` holds the ids of existing comments the reply answers.
    ``unresolved_comment`` is set when the reply posts a new unresolved
    human comment.
    """

    actor: str
    comment_refs: tuple[str, ...] = ()
    unresolved_comment: bool = False
    instructions: Instructions = NO_INSTRUCTIONS


@dataclass(frozen=True)
class StatusChanged:
    actor: str
    to: ChangeStatus
    previous: ChangeStatus | None = None
    instructions: Instructions = NO_INSTRUCTIONS


@dataclass(frozen=True)
class RobotVotedNegatively:
    actor: str
    label: str = ""
    instructions: Instructions = NO_INSTRUCTIONS


@dataclass(frozen=True)
class ManualUpdate:
    """A direct edit of the attention set with no other change mutation."""

    actor: str
    instructions: Instructions = field(default_factory=Instructions)


Event = ReviewerAdded | ReviewerOrCcRemoved | VoteDeleted | Replied | StatusChanged | RobotVotedNegatively | ManualUpdate
