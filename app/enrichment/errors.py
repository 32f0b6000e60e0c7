"""Typed failures of the enrichment chain."""

from enum import Enum
from typing import Optional


class EnrichmentErrorKind(str, Enum):
    QUOTA_EXCEEDED = "quota_exceeded"
    RATE_LIMITED = "rate_limited"
    INVALID_CREDENTIAL = "invalid_credential"
    UPSTREAM_ERROR = "upstream_error"
    TIMEOUT = "timeout"
    EMPTY_RESPONSE = "empty_response"
    MALFORMED_RESPONSE = "malformed_response"


class EnrichmentError(Exception):
    """
    Failure of a text generation call.

    Only the text generator raises this; callers either let it propagate
    unchanged or catch it and continue.
    """

    def __init__(
        self,
        kind: EnrichmentErrorKind,
        http_status: int,
        message: str,
        vendor_error_code: Optional[str] = None,
        vendor_error_type: Optional[str] = None,
        raw: Optional[str] = None,
    ):
        self.kind = kind
        self.http_status = http_status
        self.message = message
        self.vendor_error_code = vendor_error_code
        self.vendor_error_type = vendor_error_type
        self.raw = raw
        super().__init__(message)

    def __repr__(self) -> str:
        return (
            f"EnrichmentError(kind={self.kind.value!r}, http_status={self.http_status}, "
            f"vendor_error_code={self.vendor_error_code!r}, message={self.message!r})"
        )


class PlaceContextError(Exception):
    """The places lookup failed (`upstream_error`) or returned junk (`malformed_response`)."""

    def __init__(self, kind: EnrichmentErrorKind, http_status: int, message: str):
        self.kind = kind
        self.http_status = http_status
        self.message = message
        super().__init__(message)
