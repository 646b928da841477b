class BlockCMSError(Exception):
    """Base class for every error raised by the content core."""


class SchemaDefinitionError(BlockCMSError):
    """A component schema is malformed and cannot be stored."""

    def __init__(self, errors, message="Invalid component schema"):
        super().__init__(message)
        self.errors = errors


class UnknownComponentError(BlockCMSError):
    def __init__(self, component):
        super().__init__(f"Component '{component}' not found")
        self.component = component


class ContentValidationError(BlockCMSError):
    """A content write was rejected; `errors` is the path-keyed error map."""

    def __init__(self, errors):
        super().__init__(f"Content failed validation at {len(errors)} location(s)")
        self.errors = errors


class LockConflictError(BlockCMSError):
    """
    Lock acquire/extend/release (or an edit) was denied.

    Carries the current holder so callers can show
    "locked by X, Y minutes remaining".
    """

    def __init__(self, message, *, holder_id=None, expires_at=None, remaining_seconds=0):
        super().__init__(message)
        self.holder_id = holder_id
        self.expires_at = expires_at
        self.remaining_seconds = remaining_seconds

    @property
    def remaining_minutes(self):
        return round(self.remaining_seconds / 60, 1)

    def to_dict(self):
        return {
            "error": "LockConflict",
            "message": str(self),
            "holder_id": self.holder_id,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "remaining_minutes": self.remaining_minutes,
        }


class VersionNotFoundError(BlockCMSError):
    pass


class RestoreIntegrityError(BlockCMSError):
    pass


class VersionRetentionError(BlockCMSError):
    pass


class ConcurrentVersionError(BlockCMSError):
    pass
