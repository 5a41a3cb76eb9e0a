"""
Error taxonomy for the activity draw configuration engine.
Every error is a ValueError so callers that only care about "bad config"
can catch one type.
"""

from __future__ import annotations

from typing import Any, Optional


class ActivityConfigError(ValueError):
    """Base class for every error raised by activity_draw."""


class DuplicateNameError(ActivityConfigError):
    """A category or item name collides with an existing sibling."""


class NotFoundError(ActivityConfigError):
    """A category or item id is unknown."""


class TooLongError(ActivityConfigError):
    """A name or custom content exceeds its configured length bound."""


class EmptyNameError(ActivityConfigError):
    """A name or custom content is blank."""


class LimitExceededError(ActivityConfigError):
    """Adding another category or item would exceed the configured count."""


class ProtectedEntityError(ActivityConfigError):
    """The distinguished category cannot be deleted or edited directly."""


class EmptyCategoryError(ActivityConfigError):
    """A category has no items to balance into or draw from."""


class InvalidConfigError(ActivityConfigError):
    """The tree fails validation. `result` holds the ValidationResult."""

    def __init__(self, message: str, result: Optional[Any] = None):
        super().__init__(message)
        self.result = result


class OverAllocationError(InvalidConfigError):
    """An edit would drive the distinguished category below zero."""


class AlreadyDrawnError(ActivityConfigError):
    """Today's draw has already been recorded."""


__all__ = [
    "ActivityConfigError",
    "DuplicateNameError",
    "NotFoundError",
    "TooLongError",
    "EmptyNameError",
    "LimitExceededError",
    "ProtectedEntityError",
    "EmptyCategoryError",
    "InvalidConfigError",
    "OverAllocationError",
    "AlreadyDrawnError",
]
