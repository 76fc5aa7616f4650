"""
gemini_grounded_search.errors
Exception types raised by the client and helpers to classify them.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

__all__ = [
    'GeminiSearchError', 'MissingAPIKeyError', 'InvalidModelNameError',
    'InvalidParameterError', 'NoContentGeneratedError', 'ContentBlockedError',
    'APIError',
    'is_api_error', 'get_api_error', 'is_authentication_error', 'is_quota_error',
    'is_invalid_request_error', 'is_content_blocked_error', 'is_server_error',
]


class GeminiSearchError(Exception):
    """Base class for every error raised by this package."""


class MissingAPIKeyError(GeminiSearchError):
    def __init__(self, message: str = "API key is missing"):
        super().__init__(message)


class InvalidModelNameError(GeminiSearchError):
    def __init__(self, message: str = "model name is invalid or empty"):
        super().__init__(message)


class InvalidParameterError(GeminiSearchError, ValueError):
    pass


class NoContentGeneratedError(GeminiSearchError):
    def __init__(self, message: str = "model generated no content"):
        super().__init__(message)


class ContentBlockedError(GeminiSearchError):
    def __init__(self, message: str = "content generation was blocked"):
        super().__init__(message)


class APIError(GeminiSearchError):
    """Error reported by the Gemini API.

    ``code`` is the HTTP status (0 when the failure happened before a response
    was received) and ``status`` the API status string, e.g. ``RESOURCE_EXHAUSTED``.
    ``reason`` optionally holds one of the sentinel errors above, so a safety
    block surfaced by the API is still recognised as a content block.
    """

    def __init__(
        self,
        code: int,
        message: str,
        status: Optional[str] = None,
        details: Sequence[Any] = (),
        reason: Optional[GeminiSearchError] = None,
    ):
        self.code = code
        self.status = status or ''
        self.message = message
        self.details = list(details)
        self.reason = reason
        super().__init__(str(self))

    def __str__(self) -> str:
        label = self.status or str(self.code)
        text = f"API error (status: {label}): {self.message}"
        if self.reason is not None:
            text += f" - {self.reason}"
        return text


# -----------------------------------------------------------------------------
# CLASSIFICATION
# -----------------------------------------------------------------------------

def get_api_error(err: BaseException) -> Optional[APIError]:
    """Return the APIError in ``err``'s cause chain, if any."""
    seen = set()
    cur: Optional[BaseException] = err
    while cur is not None and id(cur) not in seen:
        if isinstance(cur, APIError):
            return cur
        seen.add(id(cur))
        cur = cur.__cause__
    return None


def is_api_error(err: BaseException) -> bool:
    return get_api_error(err) is not None


def _matches(err: BaseException, codes: Sequence[int], statuses: Sequence[str]) -> bool:
    api_err = get_api_error(err)
    if api_err is None:
        return False
    return api_err.code in codes or api_err.status in statuses


def _has_reason(err: BaseException, kind: type) -> bool:
    if isinstance(err, kind):
        return True
    api_err = get_api_error(err)
    return api_err is not None and isinstance(api_err.reason, kind)


def is_authentication_error(err: BaseException) -> bool:
    """Invalid or missing credentials (401/403 or a missing key)."""
    if isinstance(err, MissingAPIKeyError):
        return True
    return _matches(err, (401, 403), ('UNAUTHENTICATED', 'PERMISSION_DENIED'))


def is_quota_error(err: BaseException) -> bool:
    return _matches(err, (429,), ('RESOURCE_EXHAUSTED',))


def is_invalid_request_error(err: BaseException) -> bool:
    if isinstance(err, (InvalidParameterError, InvalidModelNameError)):
        return True
    return _matches(err, (400,), ('INVALID_ARGUMENT',))


def is_content_blocked_error(err: BaseException) -> bool:
    return _has_reason(err, ContentBlockedError)


def is_server_error(err: BaseException) -> bool:
    api_err = get_api_error(err)
    if api_err is None:
        return False
    return api_err.code >= 500 or api_err.status in ('INTERNAL', 'UNAVAILABLE', 'UNKNOWN')
