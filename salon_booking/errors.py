# salon_booking/errors.py

from typing import List, Optional


class SchedulingError(Exception):
    """Base class for scheduling failures."""


class ConfigurationError(SchedulingError):
    """A weekly-hours template could not be interpreted.

    Raised only inside the availability calculator, which recovers it by
    treating the day as closed.
    """


class OverlapError(SchedulingError):
    """The requested time was taken by another booking before it could be saved."""

    def __init__(self, message: str = "That time was just taken, please pick another slot", conflicts: Optional[List] = None):
        super().__init__(message)
        self.conflicts = conflicts or []


class StoreError(SchedulingError):
    """The booking store failed for a reason other than an overlap."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause
