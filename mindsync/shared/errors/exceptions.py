"""
Errors raised by the request pipeline.

Each error carries the HTTP status it maps to.
They are translated into JSON responses by the error handlers.
No framework imports allowed.
"""


class MindSyncError(Exception):
    """Base error for all request-level failures."""

    status_code = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class CorsRejectedError(MindSyncError):
    """Raised when a request comes from an origin outside the whitelist."""

    status_code = 403

    def __init__(self, origin: str) -> None:
        super().__init__(f"CORS Error: {origin} is not allowed by CORS")
        self.origin = origin


class BodyParseError(MindSyncError):
    """Raised when a request body cannot be decoded."""

    status_code = 400


class PayloadTooLargeError(MindSyncError):
    """Raised when a request body exceeds the configured parser limit."""

    status_code = 413

    def __init__(self, reason: str = "request entity too large") -> None:
        super().__init__(reason)
