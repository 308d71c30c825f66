"""
Error types raised by the scheduling and projection engine.

All errors are local and recoverable: they fail the single operation that
raised them and leave stored state untouched.
"""


class SchedulingError(Exception):
    """Base class for all engine errors."""


class InvalidRange(SchedulingError):
    """End time is not after start time, or the computed duration is not positive."""


class LockedPeriod(SchedulingError):
    """A mutation was attempted inside the lock window by a non-privileged actor."""


class NotFound(SchedulingError):
    """The operation needs a record that does not exist."""


class ValidationError(SchedulingError, ValueError):
    """A required selection or input is missing or malformed."""


class Conflict(SchedulingError):
    """The stored record version does not match the version the caller expected."""
