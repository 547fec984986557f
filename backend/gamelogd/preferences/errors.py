"""
Error taxonomy shared by the core and the HTTP layer.

Each error carries the HTTP status it maps to and a message that is safe to
show to users. Raw third-party errors are logged, never shown.
"""


class GamelogError(Exception):
    """Base class for errors with a user-facing message."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(GamelogError):
    """Bad rating value, missing fields, malformed body."""
    status_code = 400


class AuthError(GamelogError):
    """Missing, invalid or expired token."""
    status_code = 401


class ForbiddenError(GamelogError):
    status_code = 403


class NotFoundError(GamelogError):
    status_code = 404


class ConflictError(GamelogError):
    """Duplicate registration, or a compare-and-swap that kept losing."""
    status_code = 409


class UpstreamError(GamelogError):
    """Store or recommendation generator unavailable."""
    status_code = 500


class StoreUnavailableError(UpstreamError):
    pass


class ConfigError(GamelogError):
    """Missing credentials for an external provider."""
    status_code = 500
