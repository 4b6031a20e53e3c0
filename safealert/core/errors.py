"""
Error taxonomy for SafeAlert.

- StoreError / NotificationError: transient I/O failures
- PreconditionError and subclasses: expected, recoverable conditions with a
  user-facing message
- InvalidTransitionError: illegal report lifecycle transition
"""

from typing import Optional


class SafeAlertError(Exception):
    """Base class for all SafeAlert errors."""


class StoreError(SafeAlertError):
    """A report store read or write failed."""


class NotificationError(SafeAlertError):
    """Scheduling or dispatching a notification failed."""


class ReportNotFoundError(SafeAlertError):
    def __init__(self, report_id: str):
        super().__init__(f"Report {report_id} not found")
        self.report_id = report_id


class InvalidTransitionError(SafeAlertError, ValueError):
    """Raised when a report cannot move from its current status to the requested one."""


class PreconditionError(SafeAlertError):
    """
    An expected precondition is not met.
    The message is safe to show to the user.
    """
    message = "Precondition not met."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)


class UserNotAuthenticatedError(PreconditionError):
    message = "User not authenticated. Please sign in first."


class LocationNotAvailableError(PreconditionError):
    message = "Location not available. Please enable location services."


class CategoryNotSelectedError(PreconditionError):
    message = "Please select a report category."


class NotModeratorError(PreconditionError):
    message = "Unauthorized: Only moderators can review reports."
