"""
Application error taxonomy.

Every error carries a machine-readable ``code`` and the HTTP status it maps to.
The exception handlers registered in ``stylizer.main`` turn them into
``{"success": false, "message": ..., "code": ...}`` responses.
"""
from typing import Any, Dict, Optional


class StylizerError(Exception):
    """Base class for all errors surfaced to API callers."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "message": self.message,
            "code": self.code,
        }


class AuthError(StylizerError):
    """Missing credential. The caller must sign in."""

    status_code = 401
    code = "NO_TOKEN"


class InvalidTokenError(AuthError):
    """Credential present but invalid, expired or revoked."""

    status_code = 403
    code = "INVALID_TOKEN"


class ForbiddenError(StylizerError):
    status_code = 403
    code = "FORBIDDEN"


class ValidationError(StylizerError):
    """Bad upload or unknown style."""

    status_code = 400
    code = "INVALID_REQUEST"


class QuotaExceeded(StylizerError):
    """
    The user consumed every transformation of the quota.

    Carries the current counter so clients can render "X/Y used".
    """

    status_code = 429
    code = "LIMIT_EXCEEDED"

    def __init__(self, used: int, maximum: int, usage: Optional[Dict[str, Any]] = None):
        super().__init__(
            f"Transformation limit exceeded. You have used {used}/{maximum} transformations."
        )
        self.used = used
        self.maximum = maximum
        self.usage = usage

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["usage"] = self.usage or {
            "transformationsUsed": self.used,
            "transformationsRemaining": max(self.maximum - self.used, 0),
            "maxTransformations": self.maximum,
        }
        return body


class TransformationFailed(StylizerError):
    """The image provider failed or returned no image."""

    status_code = 500
    code = "TRANSFORMATION_FAILED"


class ProviderTimeout(TransformationFailed):
    """The image provider did not answer within the timeout budget."""

    code = "PROVIDER_TIMEOUT"


class StorageUnavailable(StylizerError):
    """The usage database could not be reached."""

    status_code = 500
    code = "STORAGE_UNAVAILABLE"
