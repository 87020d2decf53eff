"""Domain errors raised by services and rendered by the API layer.

Every error carries the HTTP status the API answers with and a ``retryable``
flag telling the caller whether to fix the input or try again later.
"""
from fastapi import status


class WritifyError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(WritifyError):
    """Missing or malformed input; nothing was written."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(WritifyError):
    status_code = status.HTTP_404_NOT_FOUND


class PreconditionFailed(NotFound):
    """The row exists in a state that does not allow the operation."""


class Forbidden(WritifyError):
    status_code = status.HTTP_403_FORBIDDEN


class StoreUnavailable(WritifyError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    retryable = True


class SweepFailed(WritifyError):
    """A retention sweep was rolled back; the next run retries from scratch."""

    retryable = True
