"""Domain errors raised by the service layer.

Routes translate these into form re-renders with a user-facing message;
none of them carry storage internals in their text.
"""


class StudyHubError(Exception):
    """Base class for service-layer errors."""


class ValidationError(StudyHubError):
    """Missing or invalid user input."""


class DuplicateEmailError(StudyHubError):
    """An account with this email already exists."""


class InvalidCredentialsError(StudyHubError):
    """Unknown email or wrong password; the two are never distinguished."""

    def __init__(self):
        super().__init__("invalid email or password")


class StorageError(StudyHubError):
    """The store is unavailable or rejected the write."""
