"""Error taxonomy for attention set updates.

Every error is raised before any update is appended, so a failed call
never leaves a partial batch in the log. Automatic rules never raise;
only explicit (manual) instructions and internal invariant checks can.
"""

from __future__ import annotations


class AttentionSetError(Exception):
    """Base class for all attention set errors."""


class ConflictError(AttentionSetError):
    """Explicit instructions name the same account twice, or add and remove it together."""


class InvalidTargetError(AttentionSetError):
    """An explicit instruction names an account that is not active on the change."""

    def __init__(self, account: str):
        self.account = account
        super().__init__(
            f"{account} doesn't exist or is not active on the change as an owner, "
            "uploader, reviewer, or cc so they can't be added to the attention set"
        )


class RobotTargetError(AttentionSetError):
    """An explicit add names a service account."""

    def __init__(self, account: str):
        self.account = account
        super().__init__(f"{account} is a robot, and robots can't be added to the attention set.")


class ValidationError(AttentionSetError):
    """An internal invariant was violated while building or appending a batch."""


class InputError(AttentionSetError):
    """An explicit instruction is malformed (missing user or reason, reason too long)."""
