"""GistStore: team-shared attention set history via GitHub Gist.

Useful when several tools (bots, local scripts, CI jobs) need to read the
same attention set history without running a database. Access control is
whatever the Gist's visibility and the token's scope allow.

Data format: a single JSON file named `attnset_history.json` inside the Gist,
holding an object that maps change ids to their update arrays in append
order.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Sequence

from attnset_core.models import AttentionSetUpdate, Operation
from attnset_store.base import BaseStore, StoreError

logger = logging.getLogger(__name__)

_GIST_FILENAME = "attnset_history.json"


class GistStore(BaseStore):
    """Stores attention set history in a GitHub Gist.

    Each append() re-reads the file and writes it back with one edit, so a
    batch is either fully written or not at all. Reads load the whole file,
    suitable for low thousands of updates. Switch to SQLiteStore beyond that.
    """

    def __init__(self, gist_id: str, token: str):
        try:
            from github import Github
        except ImportError:
            raise ImportError("PyGithub is required for GistStore. Install PyGithub.")
        self._gist_id = gist_id
        self._gh = Github(token)

    def _get_gist(self):
        return self._gh.get_gist(self._gist_id)

    def append(self, change_id: str, updates: Sequence[AttentionSetUpdate]) -> None:
        """Append a batch to a change's log in the Gist JSON file."""
        try:
            gist = self._get_gist()
            logs = self._read_logs(gist)
            logs.setdefault(change_id, []).extend(self._to_dict(u) for u in updates)
            gist.edit(files={_GIST_FILENAME: {"content": json.dumps(logs, indent=2)}})
        except Exception as e:
            # A failed write is always raised.
            logger.warning("GistStore.append() failed (%s): %s", type(e).__name__, e)
            raise StoreError(f"could not append to Gist {self._gist_id} ({type(e).__name__}: {e})") from e

    def list_updates(self, change_id: str) -> list[AttentionSetUpdate]:
        logs = self._load()
        return [self._from_dict(d) for d in logs.get(change_id, [])]

    def list_changes(self) -> list[str]:
        return [change_id for change_id, updates in self._load().items() if updates]

    def _load(self) -> dict[str, list[dict]]:
        try:
            return self._read_logs(self._get_gist())
        except Exception as e:
            # Never fall back to {}: it would read as an empty attention set.
            logger.warning("GistStore read failed (%s): %s", type(e).__name__, e)
            raise StoreError(f"could not read Gist {self._gist_id} ({type(e).__name__}: {e})") from e

    def _read_logs(self, gist) -> dict[str, list[dict]]:
        """Read the current JSON object from the Gist file.

        Returns {} only when the file does not exist yet. Unreadable or
        non-object content raises ValueError so it is never overwritten.
        """
        file_obj = gist.files.get(_GIST_FILENAME)
        if file_obj is None:
            return {}
        try:
            data = json.loads(file_obj.content)
        except json.JSONDecodeError as e:
            raise ValueError(f"{_GIST_FILENAME} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"{_GIST_FILENAME} must hold a JSON object, got {type(data).__name__}")
        return data

    @staticmethod
    def _to_dict(update: AttentionSetUpdate) -> dict:
        return {
            "timestamp": update.timestamp.isoformat(),
            "account": update.account,
            "operation": update.operation.value,
            "reason": update.reason,
        }

    @staticmethod
    def _from_dict(d: dict) -> AttentionSetUpdate:
        return AttentionSetUpdate(
            timestamp=datetime.fromisoformat(d["timestamp"]),
            account=d["account"],
            operation=Operation(d["operation"]),
            reason=d["reason"],
        )
