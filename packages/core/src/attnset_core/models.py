"""Attention set data model: update records and the per-event change context."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from attnset_core.errors import ValidationError
from attnset_core.threads import CommentIndex

MAX_REASON_LENGTH = 255


class Operation(str, Enum):
    ADD = "ADD"
    REMOVE = "REMOVE"


class ReviewerState(str, Enum):
    REVIEWER = "REVIEWER"
    CC = "CC"


class ChangeStatus(str, Enum):
    READY_FOR_REVIEW = "READY_FOR_REVIEW"
    WORK_IN_PROGRESS = "WORK_IN_PROGRESS"
    MERGED = "MERGED"
    ABANDONED = "ABANDONED"

    @property
    def is_closed(self) -> bool:
        return self in (ChangeStatus.MERGED, ChangeStatus.ABANDONED)

    @property
    def is_ready(self) -> bool:
        return self is ChangeStatus.READY_FOR_REVIEW


@dataclass(frozen=True)
class AttentionSetUpdate:
    """One entry of a change's attention set history.

    Records are immutable once built. The reason is shown verbatim to users
    (hovercards, emails), so it must be non-empty and bounded.
    """

    timestamp: datetime
    account: str
    operation: Operation
    reason: str

    def __post_init__(self):
        if not self.account:
            raise ValidationError("attention set update is missing an account")
        if not self.reason:
            raise ValidationError(f"attention set update for {self.account} is missing a reason")
        if len(self.reason) > MAX_REASON_LENGTH:
            raise ValidationError(
                f"reason for {self.account} exceeds {MAX_REASON_LENGTH} characters ({len(self.reason)})"
            )


@dataclass(frozen=True)
class ChangeContext:
    """Read-only snapshot of a change, loaded fresh for every event.

    Roles and status describe the change *after* the event's own mutation
    (a reviewer added by the event is already in ``reviewers``). The
    ``attention_set`` field is always overwritten by the engine from the
    change's update log, which is the only source of truth for membership.
    """

    change_id: str
    owner: str
    uploaders: frozenset[str] = frozenset()
    reviewers: frozenset[str] = frozenset()
    ccs: frozenset[str] = frozenset()
    status: ChangeStatus = ChangeStatus.READY_FOR_REVIEW
    service_accounts: frozenset[str] = frozenset()
    attention_set: frozenset[str] = frozenset()
    comments: CommentIndex = field(default_factory=CommentIndex)

    def participants(self) -> frozenset[str]:
        return frozenset({self.owner}) | self.uploaders | self.reviewers | self.ccs

    def is_active_participant(self, account: str) -> bool:
        return account in self.participants()

    def is_service_account(self, account: str) -> bool:
        return account in self.service_accounts

    def is_attending(self, account: str) -> bool:
        return account in self.attention_set
