"""Application errors surfaced to API clients."""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Stable machine-readable error codes."""
    INVALID_REQUEST = "INVALID_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    PREMIUM_REQUIRED = "PREMIUM_REQUIRED"
    TARGET_PLACE_NOT_FOUND = "TARGET_PLACE_NOT_FOUND"
    PLACE_NOT_FOUND = "PLACE_NOT_FOUND"
    DUPLICATE_PLACE = "DUPLICATE_PLACE"
    MISSING_EXTERNAL_PLACE_ID = "MISSING_EXTERNAL_PLACE_ID"
    MISSING_SERVICE_ROLE_KEY = "MISSING_SERVICE_ROLE_KEY"
    MISSING_OPENAI_KEY = "MISSING_OPENAI_KEY"
    MISSING_GOOGLE_KEY = "MISSING_GOOGLE_KEY"
    ENTITLEMENT_CHECK_FAILED = "ENTITLEMENT_CHECK_FAILED"
    DUPLICATE_CHECK_ERROR = "DUPLICATE_CHECK_ERROR"
    INSERT_ERROR = "INSERT_ERROR"
    UPDATE_ERROR = "UPDATE_ERROR"
    DB_ERROR = "DB_ERROR"
    CITY_RESOLVE_ERROR = "CITY_RESOLVE_ERROR"
    AI_QUOTA_EXCEEDED = "AI_QUOTA_EXCEEDED"
    AI_RATE_LIMITED = "AI_RATE_LIMITED"
    AI_INVALID_KEY = "AI_INVALID_KEY"
    AI_UPSTREAM_ERROR = "AI_UPSTREAM_ERROR"
    PLACES_LOOKUP_ERROR = "PLACES_LOOKUP_ERROR"
    API_PERMISSION_ERROR = "API_PERMISSION_ERROR"
    INVALID_PLACE_DATA = "INVALID_PLACE_DATA"
    RATE_LIMITED = "RATE_LIMITED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


HTTP_STATUS_BY_CODE = {
    ErrorCode.INVALID_REQUEST: 400,
    ErrorCode.MISSING_EXTERNAL_PLACE_ID: 400,
    ErrorCode.UNAUTHORIZED: 401,
    ErrorCode.AI_INVALID_KEY: 401,
    ErrorCode.AI_QUOTA_EXCEEDED: 402,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.PREMIUM_REQUIRED: 403,
    ErrorCode.TARGET_PLACE_NOT_FOUND: 404,
    ErrorCode.PLACE_NOT_FOUND: 404,
    ErrorCode.DUPLICATE_PLACE: 409,
    ErrorCode.AI_RATE_LIMITED: 429,
    ErrorCode.RATE_LIMITED: 429,
    ErrorCode.AI_UPSTREAM_ERROR: 502,
    ErrorCode.PLACES_LOOKUP_ERROR: 502,
}


class ApplicationError(Exception):
    """Error that aborts a request and is rendered as a JSON envelope."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        hint: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.code = code
        self.message = message
        self.hint = hint
        self.details = details or {}
        super().__init__(self.message)

    @property
    def http_status(self) -> int:
        return HTTP_STATUS_BY_CODE.get(self.code, 500)

    def model_dump(self) -> Dict[str, Any]:
        """Return dict representation for API responses"""
        body: Dict[str, Any] = {
            "error": self.message,
            "code": self.code.value,
            "status": self.http_status,
        }
        body.update(self.details)
        if self.hint:
            body["hint"] = self.hint
        return body


class InvalidRequest(ApplicationError):
    def __init__(self, message: str, code: ErrorCode = ErrorCode.INVALID_REQUEST):
        super().__init__(code, message)


class Unauthorized(ApplicationError):
    def __init__(self, message: str = "Unauthorized"):
        super().__init__(ErrorCode.UNAUTHORIZED, message)


class Forbidden(ApplicationError):
    def __init__(self, message: str = "Forbidden"):
        super().__init__(ErrorCode.FORBIDDEN, message)


class PremiumRequired(ApplicationError):
    def __init__(self, message: str = "Premium required."):
        super().__init__(ErrorCode.PREMIUM_REQUIRED, message)


class TargetNotFound(ApplicationError):
    def __init__(self, message: str = "Target place not found"):
        super().__init__(ErrorCode.TARGET_PLACE_NOT_FOUND, message)


class PlaceNotFound(ApplicationError):
    def __init__(self, message: str = "Place not found"):
        super().__init__(ErrorCode.PLACE_NOT_FOUND, message)


class DuplicatePlace(ApplicationError):
    """Another place already references the same external place id."""

    def __init__(self, existing_place_id: Optional[str], existing_title: Optional[str]):
        self.existing_place_id = existing_place_id
        self.existing_title = existing_title
        super().__init__(
            ErrorCode.DUPLICATE_PLACE,
            "Place already exists",
            details={
                "existing_place_id": existing_place_id,
                "existing_title": existing_title,
            },
        )


class MissingServiceCredential(ApplicationError):
    def __init__(self):
        super().__init__(
            ErrorCode.MISSING_SERVICE_ROLE_KEY,
            "Server is missing SERVICE_ROLE_KEY. Cannot verify permissions for this request.",
        )


class MissingConfiguration(ApplicationError):
    """A required upstream credential is not configured on the server."""


class StoreWriteError(ApplicationError):
    """A primary write failed; the request cannot report success."""

    def __init__(self, code: ErrorCode, message: str, details: Optional[str] = None):
        super().__init__(code, message, details={"details": details} if details else None)


class RateLimited(ApplicationError):
    def __init__(self, message: str = "Rate limit exceeded. Please try again later."):
        super().__init__(ErrorCode.RATE_LIMITED, message)
