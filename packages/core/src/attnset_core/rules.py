"""Automatic attention set rules.

``decide`` is a pure function of (event, context, timestamp): it never
touches storage and never raises for automatic rules. The rule for each
event type lives in ``_RULES``; explicit user instructions are applied
after the automatic rule so they win for the same account.

Rules that only remove accounts (a reviewer or CC leaving the change) run
whatever the change status, so a member re-added by hand to a closed
change still leaves when they leave the change. Rules that add accounts
are gated on the change status.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from attnset_core.events import (
    Event,
    ManualUpdate,
    Replied,
    ReviewerAdded,
    ReviewerOrCcRemoved,
    RobotVotedNegatively,
    StatusChanged,
    VoteDeleted,
)
from attnset_core.models import AttentionSetUpdate, ChangeContext, ChangeStatus, Operation, ReviewerState
from attnset_core.threads import ThreadResolver

logger = logging.getLogger(__name__)

REASON_REVIEWER_ADDED = "Reviewer was added"
REASON_REVIEWER_REMOVED = "Reviewer/Cc was removed"
REASON_VOTE_DELETED = "Their vote was deleted"
REASON_REMOVED_ON_REPLY = "removed on reply"
REASON_OWNER_REPLY = "Someone else replied on the change"
REASON_THREAD_REPLY = "Someone else replied on a comment you posted"
REASON_ABANDONED = "Change was abandoned"
REASON_SUBMITTED = "Change was submitted"
REASON_WORK_IN_PROGRESS = "Change was marked work in progress"
REASON_READY_FOR_REVIEW = "Change was marked ready for review"
REASON_ROBOT_NEGATIVE_VOTE = "A robot voted negatively on a label"


class _Batch:
    """Collects at most one update per account, dropping no-ops.

    An automatic intent never displaces an earlier one for the same account.
    An explicit intent always replaces whatever is queued for that account.
    """

    def __init__(self, context: ChangeContext, now: datetime):
        self._context = context
        self._now = now
        self._updates: dict[str, AttentionSetUpdate] = {}

    def _is_noop(self, account: str, operation: Operation) -> bool:
        return self._context.is_attending(account) == (operation is Operation.ADD)

    def automatic(self, account: str, operation: Operation, reason: str) -> None:
        if operation is Operation.ADD and self._context.is_service_account(account):
            logger.debug("Not adding service account %s automatically", account)
            return
        if account in self._updates:
            return
        if self._is_noop(account, operation):
            logger.debug("Skipping redundant %s for %s (%s)", operation.value, account, reason)
            return
        self._updates[account] = AttentionSetUpdate(self._now, account, operation, reason)

    def explicit(self, account: str, operation: Operation, reason: str) -> None:
        self._updates.pop(account, None)
        if self._is_noop(account, operation):
            logger.debug("Explicit %s for %s is already in effect", operation.value, account)
            return
        self._updates[account] = AttentionSetUpdate(self._now, account, operation, reason)

    def updates(self) -> list[AttentionSetUpdate]:
        return list(self._updates.values())


# ---------------------------------------------------------------------------
# Rules, one per event type
# ---------------------------------------------------------------------------


def _reviewer_added(event: ReviewerAdded, context: ChangeContext, batch: _Batch, resolver: ThreadResolver) -> None:
    if context.is_service_account(event.actor):
        return
    if event.state is ReviewerState.CC:
        # CCs are informed only; a reviewer moved to CC loses attention.
        batch.automatic(event.account, Operation.REMOVE, REASON_REVIEWER_REMOVED)
        return
    if event.previous_state is ReviewerState.REVIEWER:
        return
    if event.account == event.actor or not context.status.is_ready:
        return
    batch.automatic(event.account, Operation.ADD, REASON_REVIEWER_ADDED)


def _reviewer_removed(
    event: ReviewerOrCcRemoved, context: ChangeContext, batch: _Batch, resolver: ThreadResolver
) -> None:
    if context.is_service_account(event.actor):
        return
    batch.automatic(event.account, Operation.REMOVE, REASON_REVIEWER_REMOVED)


def _vote_deleted(event: VoteDeleted, context: ChangeContext, batch: _Batch, resolver: ThreadResolver) -> None:
    if context.is_service_account(event.actor) or event.actor == event.account:
        return
    if context.status.is_closed:
        return
    batch.automatic(event.account, Operation.ADD, REASON_VOTE_DELETED)


def _replied(event: Replied, context: ChangeContext, batch: _Batch, resolver: ThreadResolver) -> None:
    replier = event.actor
    if context.is_service_account(replier):
        return

    batch.automatic(replier, Operation.REMOVE, REASON_REMOVED_ON_REPLY)

    if context.status.is_closed:
        if event.unresolved_comment and context.owner != replier:
            batch.automatic(context.owner, Operation.ADD, REASON_OWNER_REPLY)
        return
    if not context.status.is_ready:
        return

    for account in [context.owner] + sorted(context.uploaders - {context.owner}):
        if account != replier:
            batch.automatic(account, Operation.ADD, REASON_OWNER_REPLY)

    for comment_id in event.comment_refs:
        for account in sorted(resolver.resolve_participants(comment_id)):
            if account == replier:
                continue
            if not context.is_active_participant(account):
                logger.debug("Thread participant %s is no longer active on %s", account, context.change_id)
                continue
            batch.automatic(account, Operation.ADD, REASON_THREAD_REPLY)


def _status_changed(event: StatusChanged, context: ChangeContext, batch: _Batch, resolver: ThreadResolver) -> None:
    if event.previous is not None and event.previous is event.to:
        return

    if event.to.is_closed:
        reason = REASON_ABANDONED if event.to is ChangeStatus.ABANDONED else REASON_SUBMITTED
        for account in sorted(context.attention_set):
            batch.automatic(account, Operation.REMOVE, reason)
    elif event.to is ChangeStatus.WORK_IN_PROGRESS:
        for account in sorted(context.attention_set):
            batch.automatic(account, Operation.REMOVE, REASON_WORK_IN_PROGRESS)
    elif event.to is ChangeStatus.READY_FOR_REVIEW:
        for account in sorted(context.reviewers):
            batch.automatic(account, Operation.ADD, REASON_READY_FOR_REVIEW)


def _robot_voted(event: RobotVotedNegatively, context: ChangeContext, batch: _Batch, resolver: ThreadResolver) -> None:
    if not context.is_service_account(event.actor) or context.status.is_closed:
        return
    batch.automatic(context.owner, Operation.ADD, REASON_ROBOT_NEGATIVE_VOTE)


def _no_rule(event: ManualUpdate, context: ChangeContext, batch: _Batch, resolver: ThreadResolver) -> None:
    pass


_RULES: dict[type, Callable[..., None]] = {
    ReviewerAdded: _reviewer_added,
    ReviewerOrCcRemoved: _reviewer_removed,
    VoteDeleted: _vote_deleted,
    Replied: _replied,
    StatusChanged: _status_changed,
    RobotVotedNegatively: _robot_voted,
    ManualUpdate: _no_rule,
}


def _automatic_rules_apply(event: Event) -> bool:
    if not event.instructions.block_automatic_rules:
        return True
    # Closing a change always clears the attention set.
    return isinstance(event, StatusChanged) and event.to.is_closed


def decide(
    event: Event,
    context: ChangeContext,
    now: datetime,
    thread_mode: str = "ancestors",
) -> list[AttentionSetUpdate]:
    """Return the updates ``event`` causes, explicit instructions last.

    Explicit instructions are assumed to have been validated already.
    """
    try:
        rule = _RULES[type(event)]
    except KeyError:
        raise TypeError(f"Unsupported attention set event: {type(event).__name__}")

    batch = _Batch(context, now)
    if _automatic_rules_apply(event):
        rule(event, context, batch, ThreadResolver(context.comments, thread_mode))

    for instruction in event.instructions.adds:
        batch.explicit(instruction.account, Operation.ADD, instruction.reason)
    for instruction in event.instructions.removes:
        batch.explicit(instruction.account, Operation.REMOVE, instruction.reason)

    return batch.updates()
