"""Attention set engine facade.

One call per change-mutating operation:

    validate explicit instructions -> decide -> append to the change's log

The engine is stateless between calls and holds no locks. Callers must
serialise calls for the same change (one writer per change, e.g. inside the
change's own update transaction). If ``store.append`` fails, nothing was
written and the caller reprocesses the event with a freshly loaded context.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, Iterable

from attnset_core.identity import ConfiguredServiceAccounts, IdentityClassifier
from attnset_core.log import UpdateLog
from attnset_core.rules import decide
from attnset_core.threads import THREAD_MODES
from attnset_core.validation import check_instructions

if TYPE_CHECKING:
    from attnset_core.events import Event
    from attnset_core.models import AttentionSetUpdate, ChangeContext

    # (change_id, applied batch, attention set after the batch)
    Listener = Callable[[str, list[AttentionSetUpdate], frozenset[str]], None]

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AttentionSetEngine:
    """Applies attention set rules to events and records the result.

    ``store`` is any object with ``list_updates(change_id)`` and
    ``append(change_id, updates)`` (see attnset_store.base.BaseStore).
    Listeners are the notification trigger: each is called exactly once per
    successful ``decide_and_apply``, after the batch is durable.
    """

    def __init__(
        self,
        store,
        enabled: bool = True,
        identity: IdentityClassifier | None = None,
        thread_mode: str = "ancestors",
        clock: Callable[[], datetime] | None = None,
        listeners: Iterable[Listener] = (),
    ):
        if thread_mode not in THREAD_MODES:
            raise ValueError(f"Unknown thread participant mode: {thread_mode!r}. Choose 'ancestors' or 'thread'.")
        self._store = store
        self._enabled = enabled
        self._identity = identity
        self._thread_mode = thread_mode
        self._clock = clock or _utcnow
        self._listeners = list(listeners)

    @classmethod
    def from_config(cls, config: dict, store, **kwargs) -> AttentionSetEngine:
        identity = ConfiguredServiceAccounts(
            config.get("service_accounts") or [],
            config.get("service_account_domains") or [],
        )
        return cls(
            store,
            enabled=config.get("enable_attention_set", True),
            identity=identity,
            thread_mode=config.get("thread_participants", "ancestors"),
            **kwargs,
        )

    @property
    def enabled(self) -> bool:
        return self._enabled

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Read paths
    # ------------------------------------------------------------------

    def log(self, change_id: str) -> UpdateLog:
        return UpdateLog(change_id, tuple(self._store.list_updates(change_id)))

    def current_members(self, change_id: str) -> frozenset[str]:
        return self.log(change_id).current_members()

    def history(self, change_id: str) -> list[AttentionSetUpdate]:
        return self.log(change_id).history()

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    def _classify(self, event: Event, context: ChangeContext) -> frozenset[str]:
        if self._identity is None:
            return context.service_accounts
        instructions = event.instructions
        candidates = (
            context.participants()
            | {event.actor}
            | {i.account for i in instructions.adds + instructions.removes if i.account}
        )
        robots = {a for a in candidates if self._identity.is_service_account(a)}
        return context.service_accounts | robots

    def _timestamp(self, log: UpdateLog) -> datetime:
        now = self._clock()
        last = log.last_timestamp()
        # Keep history ordered even if the clock steps backwards.
        if last is not None and now < last:
            return last
        return now

    def decide_and_apply(self, event: Event, context: ChangeContext) -> list[AttentionSetUpdate]:
        """Compute, record and return the attention set updates caused by ``event``.

        Returns an empty list without reading or writing the log when the
        feature is disabled. Raises ConflictError, InputError,
        RobotTargetError or InvalidTargetError for bad explicit instructions,
        and ValidationError if the computed batch breaks the one-update-per-
        account invariant. Nothing is appended when an error is raised.
        """
        if not self._enabled:
            return []

        change_id = context.change_id
        log = self.log(change_id)
        context = replace(
            context,
            attention_set=log.current_members(),
            service_accounts=self._classify(event, context),
        )

        check_instructions(event.instructions, context)

        batch = decide(event, context, self._timestamp(log), thread_mode=self._thread_mode)
        new_log = log.append(batch)

        if batch:
            self._store.append(change_id, batch)
            logger.info(
                "Applied %d attention set update(s) to %s for %s",
                len(batch),
                change_id,
                type(event).__name__,
            )
        else:
            logger.debug("No attention set change on %s for %s", change_id, type(event).__name__)

        members = new_log.current_members()
        for listener in self._listeners:
            try:
                listener(change_id, batch, members)
            except Exception as e:
                # The batch is already recorded; a failed notification must not undo it.
                logger.warning("Attention set listener failed for %s (%s): %s", change_id, type(e).__name__, e)
        return batch
