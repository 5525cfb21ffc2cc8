"""Error kinds raised by the folder, file and identity services.

Routers translate each kind into a response; see ``filedrive.main``.
"""


class DriveError(Exception):
    """Base class for classified service failures."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(DriveError):
    """Malformed input rejected before any store mutation."""


class NotFoundError(DriveError):
    """An owner-scoped lookup found no row.

    Also used when the row exists but belongs to another user.
    """


class ConflictError(DriveError):
    """A uniqueness invariant would be, or was, violated."""


class ExternalServiceError(DriveError):
    """The relational store or the blob store failed or timed out."""


class UnexpectedError(DriveError):
    """Anything not classified above. The message is safe to show to users."""

    def __init__(self, message: str = "An unexpected error occurred.") -> None:
        super().__init__(message)
