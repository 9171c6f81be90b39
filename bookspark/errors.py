"""Application exceptions. Each carries the HTTP status the route boundary maps it to."""


class BookSparkError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class AuthError(BookSparkError):
    """Missing or invalid session, X token, or action-link signature."""

    status_code = 401


class ValidationError(BookSparkError):
    """Malformed input (bad time format, bad email, bad status)."""

    status_code = 400


class FormatError(ValidationError):
    """Payload does not have the expected shape (action token, LLM response)."""


class NotFoundError(BookSparkError):
    """Unknown id, or a record owned by another user."""

    status_code = 404


class UpstreamError(BookSparkError):
    """The database, the X API or the LLM provider failed."""

    status_code = 500
