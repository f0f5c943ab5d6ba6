"""Error types raised by WasteWise services."""


class WasteWiseError(Exception):
    """Base class for all service errors"""

    code = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ClassificationError(WasteWiseError):
    code = "classification_failed"


class StorageError(WasteWiseError):
    code = "storage_failed"


class GeolocationError(WasteWiseError):
    code = "geolocation_failed"


class NotFoundError(WasteWiseError):
    code = "not_found"


class InvalidActionError(WasteWiseError, ValueError):
    code = "invalid_action"


class RuleViolation(WasteWiseError):
    """A business rule refused the action before it reached the store"""

    code = "rule_violation"

    def __init__(self, reason: str, message: str):
        super().__init__(message)
        self.reason = reason


class UpvoteRejected(RuleViolation):
    code = "upvote_rejected"


class EscalationRejected(RuleViolation):
    code = "escalation_rejected"


class EventJoinRejected(RuleViolation):
    code = "event_join_rejected"


class InvalidUploadError(WasteWiseError):
    code = "invalid_upload"


# Postgres SQLSTATE reported by postgrest when a unique constraint rejects a write
UNIQUE_VIOLATION = "23505"
