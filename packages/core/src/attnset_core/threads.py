"""Comment thread indexing and participant resolution.

Comments are immutable once posted and a parent is always posted before
its replies, so a thread is a tree. We index comments by id and keep a
parent -> children map instead of walking live object references; the
comment store loads the comments once per event and hands them over as a
flat list.
"""

from __future__ import annotations

import logging
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Iterable

logger = logging.getLogger(__name__)

THREAD_MODES = ("ancestors", "thread")


@dataclass(frozen=True)
class Comment:
    """A published comment. ``robot`` marks comments posted by automated tooling."""

    id: str
    author: str
    parent: str | None = None
    robot: bool = False


class CommentIndex:
    """Arena of comments keyed by id, with a parent -> children index."""

    def __init__(self, comments: Iterable[Comment] = ()):
        self._by_id: dict[str, Comment] = {}
        self._children: dict[str, list[str]] = defaultdict(list)
        for comment in comments:
            self._by_id[comment.id] = comment
            if comment.parent is not None:
                self._children[comment.parent].append(comment.id)

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, comment_id: object) -> bool:
        return comment_id in self._by_id

    def get_comment(self, comment_id: str) -> Comment | None:
        return self._by_id.get(comment_id)

    def children(self, comment_id: str) -> list[str]:
        return list(self._children.get(comment_id, ()))

    def ancestors(self, comment_id: str) -> list[Comment]:
        """Return the comment and its ancestors, nearest first.

        Stops at the root or at the first parent that is not indexed (e.g.
        a comment on an older patch set the caller did not load).
        """
        chain: list[Comment] = []
        seen: set[str] = set()
        current = self._by_id.get(comment_id)
        while current is not None and current.id not in seen:
            chain.append(current)
            seen.add(current.id)
            if current.parent is None:
                break
            current = self._by_id.get(current.parent)
        return chain

    def root_of(self, comment_id: str) -> Comment | None:
        chain = self.ancestors(comment_id)
        return chain[-1] if chain else None

    def subtree(self, comment_id: str) -> list[Comment]:
        """Return the comment and all of its descendants, breadth first."""
        result: list[Comment] = []
        queue = deque([comment_id])
        seen: set[str] = set()
        while queue:
            current_id = queue.popleft()
            if current_id in seen or current_id not in self._by_id:
                continue
            seen.add(current_id)
            result.append(self._by_id[current_id])
            queue.extend(self._children.get(current_id, ()))
        return result


class ThreadResolver:
    """Resolves the human participants of the thread a reply points into.

    mode="ancestors" collects authors on the path from the replied-to
    comment up to the thread root. Parallel branches (people replying to
    the same parent without seeing each other) are not included.

    mode="thread" collects every human author in the whole tree that
    contains the replied-to comment, parallel branches included.
    """

    def __init__(self, index: CommentIndex, mode: str = "ancestors"):
        if mode not in THREAD_MODES:
            raise ValueError(f"Unknown thread participant mode: {mode!r}. Choose 'ancestors' or 'thread'.")
        self._index = index
        self._mode = mode

    def resolve_participants(self, comment_id: str | None) -> set[str]:
        if not comment_id:
            return set()
        if comment_id not in self._index:
            logger.debug("Comment %s is not indexed; no thread participants resolved", comment_id)
            return set()

        if self._mode == "thread":
            root = self._index.root_of(comment_id)
            comments = self._index.subtree(root.id) if root is not None else []
        else:
            comments = self._index.ancestors(comment_id)

        return {c.author for c in comments if not c.robot}
