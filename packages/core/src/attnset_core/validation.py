"""Checks on explicit attention set instructions, run before any rule is evaluated."""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING, Sequence

from attnset_core.errors import ConflictError, InputError, InvalidTargetError, RobotTargetError
from attnset_core.models import MAX_REASON_LENGTH

if TYPE_CHECKING:
    from attnset_core.events import AttentionSetInput, Instructions
    from attnset_core.models import ChangeContext

_CONFLICT_MESSAGE = "user can not be added/removed twice, and can not be added and removed at the same time"


def validate(explicit_adds: Sequence[AttentionSetInput], explicit_removes: Sequence[AttentionSetInput]) -> None:
    """Reject instructions that name an account more than once across both lists."""
    counts = Counter(i.account for i in list(explicit_adds) + list(explicit_removes))
    if any(n > 1 for n in counts.values()):
        raise ConflictError(_CONFLICT_MESSAGE)


def _check_fields(instruction: AttentionSetInput) -> None:
    if not instruction.account:
        raise InputError("missing field: user")
    if not instruction.reason:
        raise InputError("missing field: reason")
    if len(instruction.reason) > MAX_REASON_LENGTH:
        raise InputError(f"reason must be at most {MAX_REASON_LENGTH} characters")


def check_instructions(instructions: Instructions, context: ChangeContext) -> None:
    """Validate explicit instructions against the change.

    Order matters for error reporting: malformed input first, then
    duplicates, then robots, then accounts not active on the change.
    """
    for instruction in instructions.adds + instructions.removes:
        _check_fields(instruction)

    validate(instructions.adds, instructions.removes)

    for instruction in instructions.adds:
        if context.is_service_account(instruction.account):
            raise RobotTargetError(instruction.account)

    for instruction in instructions.adds + instructions.removes:
        if not context.is_active_participant(instruction.account):
            raise InvalidTargetError(instruction.account)
