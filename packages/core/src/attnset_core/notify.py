"""Text the notification subsystem renders for attention set changes.

Delivery is not handled here. The engine calls its listeners once per
successful batch; listeners use these helpers to build email headers,
footers and per-update sentences.
"""

from __future__ import annotations

from typing import Iterable

from attnset_core.models import AttentionSetUpdate, Operation


def attention_header(names: Iterable[str]) -> str | None:
    """Header line listing who must act, or None if nobody is in the set."""
    names = list(names)
    if not names:
        return None
    return f"Attention is currently required from: {', '.join(names)}."


FOOTER_PREFIX = "Attnset-Attention"


def attention_footer(names: Iterable[str]) -> list[str]:
    """Machine-readable footer lines, one per attention set member.

    Mail filters key on the prefixed field name, so it must not change.
    Members are listed in the order given.
    """
    return [f"{FOOTER_PREFIX}: {name}" for name in names]


def describe_update(update: AttentionSetUpdate, actor: str) -> str:
    if update.operation is Operation.ADD:
        sentence = f"{actor} requires the attention of {update.account} to this change."
    elif actor == update.account:
        sentence = f"{actor} removed themselves from the attention set of this change."
    else:
        sentence = f"{actor} removed {update.account} from the attention set of this change."
    return f"{sentence}\n The reason is: {update.reason}."
