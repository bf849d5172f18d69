"""Domain exceptions shared by the request path and the workers."""


class FileValidationError(ValueError):
    """Missing or malformed field in a create/update call. Never retried."""


class NotFound(LookupError):
    """Record does not exist, or exists but the requester may not see it."""

    def __init__(self, detail: str = "Not found") -> None:
        super().__init__(detail)
        self.detail = detail


class NoContentError(ValueError):
    """Content requested for a record that has none (folders)."""


class StoreUnavailableError(RuntimeError):
    """Redis, the database or the blob directory could not be reached."""


class TerminalJobError(Exception):
    """A job references data that will never become valid; do not retry it."""
