"""Error types raised by the progress tracking services."""


class ProgressTrackerError(ValueError):
    """Base class for all service errors."""


class ValidationError(ProgressTrackerError):
    """Malformed input: bad CSV, blank goal name, unknown status token."""


class InvalidStatusError(ValidationError):
    """Status value is not one of pending, start, completed."""

    def __init__(self, value):
        super().__init__(
            f"Invalid status '{value}'. Expected one of: pending, start, completed"
        )
        self.value = value


class NotFoundError(ProgressTrackerError):
    """Referenced goal, category, topic or subtopic does not exist."""


class DataIntegrityError(ProgressTrackerError):
    """A node's parent is missing while aggregating progress."""


class ConcurrencyError(ProgressTrackerError):
    """Progress could not be propagated because of repeated concurrent updates."""
