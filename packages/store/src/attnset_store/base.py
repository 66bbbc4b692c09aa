"""Abstract store interface.

A store persists the attention set update log of every change. The engine
depends on BaseStore rather than a concrete backend, so backends are
swappable without touching engine code.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from attnset_core.models import AttentionSetUpdate


class StoreError(Exception):
    """A batch could not be made durable. Nothing from the batch was written."""


class BaseStore(ABC):
    """Pluggable persistence layer for attention set history.

    Logs are append-only: implementations never rewrite, reorder or delete
    records that were previously appended.
    """

    @abstractmethod
    def append(self, change_id: str, updates: Sequence[AttentionSetUpdate]) -> None:
        """Atomically append a batch to a change's log.

        Raises StoreError if the batch could not be written.
        """

    @abstractmethod
    def list_updates(self, change_id: str) -> list[AttentionSetUpdate]:
        """Return a change's log in append order.

        Returns an empty list for a change with no history.
        """

    @abstractmethod
    def list_changes(self) -> list[str]:
        """Return the ids of every change with at least one update."""

    def close(self) -> None:
        """Release any resources held by the store (connections, file handles).

        Optional. Subclasses that need cleanup should override this.
        Default is a no-op so callers can always call close() safely.
        """
