from fastapi import Depends, Request, Response
import structlog

from testgen.core.dependencies import get_rate_limiter
from testgen.core.exceptions import InvalidInput, RateLimitExceeded
from testgen.core.rate_limiter import RateLimiter

logger = structlog.get_logger()


def client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


async def enforce_rate_limit(
    request: Request,
    response: Response,
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> None:
    """Count the request against its client's window; 429 once the cap is passed."""
    key = client_key(request)
    decision = limiter.hit(key)
    response.headers["X-RateLimit-Limit"] = str(decision.limit)
    response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
    response.headers["X-RateLimit-Reset"] = str(int(decision.reset_at))
    if not decision.allowed:
        logger.warning("Rate limit exceeded", client_ip=key, retry_after=decision.retry_after)
        raise RateLimitExceeded(retry_after=decision.retry_after)


async def require_json_content_type(request: Request) -> None:
    content_type = request.headers.get("content-type", "")
    if "application/json" not in content_type.lower():
        raise InvalidInput("Content-Type must be application/json", field="content-type")
