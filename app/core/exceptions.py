"""Errors raised by the scheduling core.

Conflicts are not errors: they travel as data (a warning string or a
``RecurrenceResolution``) and the practitioner may always book over them.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from app.models.scheduling import RecurrenceResolution


class SchedulingError(Exception):
    """Base class for errors surfaced to the caller of the scheduling core."""


class ValidationError(SchedulingError):
    """The draft cannot be submitted; ``field`` names the input to fix."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class ConfirmationRequired(SchedulingError):
    """A recurring draft was submitted before the series was approved."""

    def __init__(self, resolution: "RecurrenceResolution") -> None:
        super().__init__(
            f"Recurring series of {len(resolution.occurrences)} occurrence(s) needs confirmation "
            f"({len(resolution.conflicts)} conflict(s))"
        )
        self.resolution = resolution


class PersistenceError(SchedulingError):
    """The appointment store rejected the batch; nothing was written."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason
