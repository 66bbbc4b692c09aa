"""Append-only attention set history for one change.

Membership is never stored separately: it is always folded from the
ordered history, so the audit trail cannot drift from the current state.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Iterable

from attnset_core.errors import ValidationError
from attnset_core.models import AttentionSetUpdate, Operation


def fold_members(updates: Iterable[AttentionSetUpdate]) -> frozenset[str]:
    """Return accounts whose most recent update is an ADD."""
    latest: dict[str, Operation] = {}
    for update in updates:
        latest[update.account] = update.operation
    return frozenset(account for account, op in latest.items() if op is Operation.ADD)


def check_batch(updates: Iterable[AttentionSetUpdate]) -> None:
    """Raise ValidationError if any account appears more than once in a batch."""
    counts = Counter(u.account for u in updates)
    duplicates = sorted(account for account, n in counts.items() if n > 1)
    if duplicates:
        raise ValidationError(
            "attention set batch targets the same account more than once: " + ", ".join(duplicates)
        )


@dataclass(frozen=True)
class UpdateLog:
    change_id: str
    updates: tuple[AttentionSetUpdate, ...] = ()

    def append(self, updates: Iterable[AttentionSetUpdate]) -> UpdateLog:
        """Return a new log extended by ``updates``.

        The batch is checked as a whole before anything is added. History is
        not consulted: redundant updates are filtered by the rule engine.
        """
        batch = tuple(updates)
        check_batch(batch)
        return UpdateLog(self.change_id, self.updates + batch)

    def current_members(self) -> frozenset[str]:
        return fold_members(self.updates)

    def history(self) -> list[AttentionSetUpdate]:
        return list(self.updates)

    def latest(self, account: str) -> AttentionSetUpdate | None:
        for update in reversed(self.updates):
            if update.account == account:
                return update
        return None

    def last_timestamp(self):
        return self.updates[-1].timestamp if self.updates else None

    def __len__(self) -> int:
        return len(self.updates)
