"""In-process store, the default when no store is configured.

Keeps every change's log in a dict for the lifetime of the process. Used by
services that persist the log through their own change transaction and by
tests.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from attnset_store.base import BaseStore

if TYPE_CHECKING:
    from attnset_core.models import AttentionSetUpdate


class MemoryStore(BaseStore):
    def __init__(self):
        self._logs: dict[str, list[AttentionSetUpdate]] = {}

    def append(self, change_id: str, updates: Sequence[AttentionSetUpdate]) -> None:
        self._logs.setdefault(change_id, []).extend(updates)

    def list_updates(self, change_id: str) -> list[AttentionSetUpdate]:
        return list(self._logs.get(change_id, []))

    def list_changes(self) -> list[str]:
        return [change_id for change_id, updates in self._logs.items() if updates]
