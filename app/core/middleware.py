import time
import uuid

from app.config import settings
from app.core.logger import get_structured_logger

logger = get_structured_logger(__name__)


class SecurityHeadersMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                message["headers"].extend([
                    (b"X-Content-Type-Options", b"nosniff"),
                    (b"X-Frame-Options", b"DENY"),
                    (b"X-XSS-Protection", b"1; mode=block"),
                    (b"Referrer-Policy", b"strict-origin-when-cross-origin"),
                ])
            await send(message)

        await self.app(scope, receive, send_with_headers)


class RequestContextMiddleware:
    """Tags each request with X-Request-Id and logs its duration."""

    def __init__(self, app, slow_request_ms: int = None):
        self.app = app
        self.slow_request_ms = slow_request_ms if slow_request_ms is not None else settings.slow_request_ms

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = str(uuid.uuid4())
        scope.setdefault("state", {})["request_id"] = request_id
        started = time.monotonic()
        status_holder = {}

        async def send_with_request_id(message):
            if message["type"] == "http.response.start":
                status_holder["status"] = message["status"]
                message.setdefault("headers", [])
                message["headers"].append((b"X-Request-Id", request_id.encode()))
            await send(message)

        try:
            await self.app(scope, receive, send_with_request_id)
        finally:
            duration_ms = int((time.monotonic() - started) * 1000)
            context = {
                "requestId": request_id,
                "path": scope.get("path"),
                "method": scope.get("method"),
                "statusCode": status_holder.get("status"),
                "duration": duration_ms,
            }
            if duration_ms > self.slow_request_ms:
                logger.warning(f"Slow request detected: {duration_ms}ms", context)
            else:
                logger.debug(f"Request completed in {duration_ms}ms", context)
