"""
Domain errors raised by the store and the summary generator.

Each error carries the HTTP status code it maps to. The application
installs one exception handler for StudentServiceError, so routes just
let these propagate.
"""


class StudentServiceError(Exception):
    """Base class for all service errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(StudentServiceError):
    """Malformed or out-of-range id, invalid fields, or body/path id mismatch."""

    status_code = 400


class AlreadyExistsError(StudentServiceError):
    status_code = 409


class NotFoundError(StudentServiceError):
    status_code = 404


class GenerationFailedError(StudentServiceError):
    """The remote generation call failed; ``cause`` holds the underlying problem."""

    status_code = 500

    def __init__(self, cause):
        super().__init__(f"Failed to generate summary: {cause}")
        self.cause = cause


class EmptySummaryError(StudentServiceError):
    status_code = 500

    def __init__(self, message: str = "Generated summary is empty"):
        super().__init__(message)


class SummaryUnavailableError(StudentServiceError):
    """The summary mode has not been chosen yet (startup did not run)."""

    status_code = 503

    def __init__(self, message: str = "Summary generator is not initialized"):
        super().__init__(message)
