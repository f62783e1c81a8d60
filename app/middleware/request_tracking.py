"""
Request Tracking Middleware
Stamps every request with an id and logs method, path, status, timing and caller
"""
import time
import uuid
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from app.config import settings
from app.core.logging_config import get_logger

logger = get_logger(__name__)


def _caller(request: Request) -> str:
    principal = getattr(request.state, "principal", None)
    if principal is None:
        return "anonymous"
    if principal.is_participant:
        return f"participant:{principal.participant_id}"
    return f"user:{principal.user_id}({principal.role_name})"


class RequestTrackingMiddleware(BaseHTTPMiddleware):
    """Logs every request; nothing is kept in memory between requests"""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        start_time = time.time()

        try:
            response = await call_next(request)
        except Exception:
            response_time = time.time() - start_time
            logger.exception(
                f"[{request_id}] {request.method} {request.url.path} - "
                f"unhandled error after {response_time*1000:.0f}ms"
            )
            raise

        response_time = time.time() - start_time
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{response_time*1000:.2f}ms"

        message = (
            f"[{request_id}] {request.method} {request.url.path} - {response.status_code} - "
            f"{response_time*1000:.0f}ms - {_caller(request)}"
        )
        if response_time > settings.SLOW_REQUEST_SECONDS:
            logger.warning(f"SLOW REQUEST: {message}")
        elif response.status_code >= 500:
            logger.error(message)
        else:
            logger.info(message)

        return response
