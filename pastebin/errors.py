"""
Exception taxonomy shared by the storage layer and the services.
"""


class PastebinError(Exception):
    """Base error carrying a stable, machine-readable code."""

    def __init__(self, message: str, code: str):
        super().__init__(message)
        self.message = message
        self.code = code

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class ValidationError(PastebinError):
    """Caller-correctable input problem."""

    EMPTY_CONTENT = "EMPTY_CONTENT"
    INVALID_ENCODING = "INVALID_ENCODING"
    INVALID_REQUEST = "INVALID_REQUEST"
    CONTENT_TOO_LARGE = "CONTENT_TOO_LARGE"
    TITLE_TOO_LONG = "TITLE_TOO_LONG"
    EXPIRY_TOO_SHORT = "EXPIRY_TOO_SHORT"
    EXPIRY_TOO_LONG = "EXPIRY_TOO_LONG"
    UNSUPPORTED_EXPIRY_KEY = "UNSUPPORTED_EXPIRY_KEY"
    UNSUPPORTED_FORMAT = "UNSUPPORTED_FORMAT"


class StorageError(PastebinError):
    """Backend failure. Never retried inside the store."""

    CREATE_FAILED = "CREATE_FAILED"
    FETCH_FAILED = "FETCH_FAILED"
    DELETE_FAILED = "DELETE_FAILED"
    LIST_FAILED = "LIST_FAILED"
    INVALID_EXPIRY = "INVALID_EXPIRY"
    ID_GENERATION_FAILED = "ID_GENERATION_FAILED"


class GenerationExhausted(StorageError):
    """Every identifier candidate collided with a live record."""

    def __init__(self, attempts: int):
        super().__init__(
            f"Unable to generate unique ID after {attempts} attempts",
            StorageError.ID_GENERATION_FAILED,
        )
        self.attempts = attempts


class AnalyticsError(PastebinError):
    """Analytics tracking failure; always suppressed by callers."""
