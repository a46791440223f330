"""
Error taxonomy for paste operations.
The HTTP layer maps each class to a status code.
"""


class PasteError(Exception):
    """Base class for paste operation failures."""

    status_code = 500


class ValidationError(PasteError):
    """Bad input shape or range. Not retryable without changing the input."""

    status_code = 400


class NotFoundError(PasteError):
    """Unknown id, expired paste, or exhausted view budget."""

    status_code = 404

    def __init__(self, message: str = "Paste not found, expired, or view limit exceeded"):
        super().__init__(message)


class InternalError(PasteError):
    """Persistence failure or id collision."""

    status_code = 500
