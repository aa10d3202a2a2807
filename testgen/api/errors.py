import traceback
from typing import Optional

from fastapi.responses import JSONResponse

from testgen.config.settings import settings
from testgen.core.exceptions import PipelineError, RateLimitExceeded


def error_response(exc: Exception, status_code: Optional[int] = None) -> JSONResponse:
    """Structured error body; the stack trace is attached only in debug mode."""
    if isinstance(exc, PipelineError):
        content = exc.to_dict()
        status_code = status_code or exc.status_code
    else:
        content = {"success": False, "message": str(exc) or "Internal server error", "code": "INTERNAL_ERROR"}
        status_code = status_code or 500

    if settings.debug:
        content["error"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))

    headers = {}
    if isinstance(exc, RateLimitExceeded):
        headers["Retry-After"] = str(exc.retry_after)
    return JSONResponse(status_code=status_code, content=content, headers=headers or None)
