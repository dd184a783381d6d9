from __future__ import annotations

from enum import Enum

from fastapi import status


class HumanivioError(Exception):
    """Base error rendered to the caller as ``{"error": message}``."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InvalidInputError(HumanivioError):
    status_code = status.HTTP_400_BAD_REQUEST


class QuotaExceededError(HumanivioError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(self, retry_after: int, message: str = "Daily limit exceeded. Please try again tomorrow.") -> None:
        super().__init__(message)
        self.retry_after = max(0, int(retry_after))


class UpstreamErrorKind(str, Enum):
    QUOTA_EXCEEDED = "quota_exceeded"
    INVALID_CREDENTIAL = "invalid_credential"
    UNKNOWN = "unknown"


_UPSTREAM_MESSAGES = {
    UpstreamErrorKind.QUOTA_EXCEEDED: "API quota exceeded. Please check your OpenAI account.",
    UpstreamErrorKind.INVALID_CREDENTIAL: "Invalid API key. Please check your configuration.",
    UpstreamErrorKind.UNKNOWN: "Failed to humanize text. Please try again.",
}

# Provider error codes as reported in the OpenAI error body.
_UPSTREAM_CODES = {
    "insufficient_quota": UpstreamErrorKind.QUOTA_EXCEEDED,
    "invalid_api_key": UpstreamErrorKind.INVALID_CREDENTIAL,
}


def classify_upstream_code(code: object) -> UpstreamErrorKind:
    if not isinstance(code, str):
        return UpstreamErrorKind.UNKNOWN
    return _UPSTREAM_CODES.get(code, UpstreamErrorKind.UNKNOWN)


class UpstreamServiceError(HumanivioError):
    """The text-generation provider call failed. Rendered as HTTP 500."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, kind: UpstreamErrorKind) -> None:
        super().__init__(_UPSTREAM_MESSAGES[kind])
        self.kind = kind
