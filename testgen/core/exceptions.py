"""
Exception hierarchy for the test case generation pipeline.

Every error carries a machine-readable code and the HTTP status the API layer
reports for it.
"""

from typing import Any, Dict, Optional


class PipelineError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}
        self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a response payload."""
        payload: Dict[str, Any] = {
            "success": False,
            "message": self.message,
            "code": self.code,
        }
        if self.details:
            payload["details"] = self.details
        return payload


# =============================================================================
# Input errors (400)
# =============================================================================


class InvalidInput(PipelineError):
    """A required request field is missing or unusable."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(
            message=message,
            code="INVALID_INPUT",
            details={"field": field} if field else {},
            status_code=400,
        )


class ReviewLinkError(PipelineError):
    """A code review link could not be turned into a review reference."""

    def __init__(self, message: str, link: Any, code: str) -> None:
        super().__init__(
            message=message,
            code=code,
            details={"link": link if isinstance(link, str) else repr(link)},
            status_code=400,
        )
        self.link = link


class InvalidLink(ReviewLinkError):
    """The string is not a URL."""

    def __init__(self, link: Any, reason: str = "Invalid URL") -> None:
        super().__init__(reason, link=link, code="INVALID_LINK")


class InvalidFormat(ReviewLinkError):
    """The URL is not shaped like <owner>/<repository>/pull/<number>."""

    def __init__(self, link: Any, reason: str = "Invalid pull request link format") -> None:
        super().__init__(reason, link=link, code="INVALID_FORMAT")


# =============================================================================
# Upstream errors (502)
# =============================================================================


class UpstreamFetchError(PipelineError):
    """The ticket source or code review source failed or refused the request."""

    def __init__(
        self,
        message: str,
        source: str,
        upstream_status: Optional[int] = None,
    ) -> None:
        details: Dict[str, Any] = {"source": source}
        if upstream_status is not None:
            details["upstream_status"] = upstream_status
        super().__init__(
            message=message,
            code="UPSTREAM_FETCH_ERROR",
            details=details,
            status_code=502,
        )
        self.source = source
        self.upstream_status = upstream_status


# =============================================================================
# Model backend errors
# =============================================================================


class ModelError(PipelineError):
    """Base class for language model failures."""


class ModelUnavailable(ModelError):
    """The model backend could not be reached or answered with an error."""

    def __init__(self, message: str = "Failed to call the model backend", model: Optional[str] = None) -> None:
        super().__init__(
            message=message,
            code="MODEL_UNAVAILABLE",
            details={"model": model} if model else {},
            status_code=503,
        )


class EmptyModelOutput(ModelError):
    """The model backend answered with an empty reply."""

    def __init__(self, message: str = "Model returned an empty response", model: Optional[str] = None) -> None:
        super().__init__(
            message=message,
            code="EMPTY_MODEL_OUTPUT",
            details={"model": model} if model else {},
            status_code=502,
        )


class MalformedModelOutput(ModelError):
    """The model reply did not have the required shape."""

    def __init__(self, message: str, raw_text: str) -> None:
        super().__init__(
            message=message,
            code="MALFORMED_MODEL_OUTPUT",
            details={"raw_preview": raw_text[:500]},
            status_code=502,
        )
        self.raw_text = raw_text


# =============================================================================
# Infrastructure errors
# =============================================================================


class PersistenceError(PipelineError):
    """A read or write against the store failed."""

    def __init__(self, message: str, operation: Optional[str] = None) -> None:
        super().__init__(
            message=message,
            code="PERSISTENCE_ERROR",
            details={"operation": operation} if operation else {},
            status_code=500,
        )


class RateLimitExceeded(PipelineError):
    """Too many requests from one client within the current window."""

    def __init__(self, retry_after: int) -> None:
        super().__init__(
            message="Too many requests. Please try again later.",
            code="RATE_LIMITED",
            details={"retryAfter": retry_after},
            status_code=429,
        )
        self.retry_after = retry_after
