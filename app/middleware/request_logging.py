from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
import logging
import time
import uuid

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id and log method, path, status and timing"""

    # Routes that don't need request logging
    EXCLUDED_ROUTES = [
        "/health",
        "/docs",
        "/redoc",
        "/openapi.json"
    ]

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        if any(request.url.path.startswith(route) for route in self.EXCLUDED_ROUTES):
            return await call_next(request)

        start_time = time.time()
        response = await call_next(request)
        processing_time = (time.time() - start_time) * 1000

        # Query strings are left out; they can carry tokens
        message = f"{request.method} {request.url.path} -> {response.status_code} ({processing_time:.1f} ms)"
        if response.status_code >= 500:
            logger.error(message)
        elif response.status_code >= 400:
            logger.warning(message)
        else:
            logger.info(message)

        response.headers["X-Request-ID"] = request_id
        return response
