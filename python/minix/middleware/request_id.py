"""Request correlation for the miniX API.

Every response carries an X-Request-ID header. A well-formed id sent by the
client is reused (UUIDs lowercased); anything else is replaced with a fresh
UUID4. The id, path and method are bound to the logging context for the
lifetime of the request, and one `request_completed` line is logged per
request.

Register this middleware after all others so it wraps them: CORS preflights
and error responses then get the header too.
"""

import re
import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from minix.logging import clear_request_context, get_logger, set_request_context

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 128

# Client-chosen ids: letters, digits, dot, dash, underscore.
TOKEN_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,128}$")

UUID_PATTERN = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)

logger = get_logger(__name__)


def is_valid_uuid(value: str) -> bool:
    return bool(UUID_PATTERN.match(value))


def is_valid_request_id(value: str) -> bool:
    """Accept UUIDs and short tokens; reject anything over 128 UTF-8 bytes."""
    if len(value.encode("utf-8")) > MAX_REQUEST_ID_LENGTH:
        return False
    return is_valid_uuid(value) or bool(TOKEN_ID_PATTERN.match(value))


def normalize_request_id(value: str) -> str:
    """Lowercase UUIDs so the same id always logs the same way."""
    return value.lower() if is_valid_uuid(value) else value


def generate_request_id() -> str:
    return str(uuid.uuid4())


def resolve_request_id(incoming: str | None) -> str:
    """Reuse a valid incoming id, otherwise mint a new one."""
    if incoming and is_valid_request_id(incoming):
        return normalize_request_id(incoming)
    return generate_request_id()


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Binds a request id to request.state and the log context.

    Args:
        app: The wrapped ASGI application.
        log_requests: Emit a `request_completed` line per request.
    """

    def __init__(self, app, log_requests: bool = True):
        super().__init__(app)
        self.log_requests = log_requests

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        started = time.monotonic()
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id
        set_request_context(request_id, path=request.url.path, method=request.method)

        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id

            if self.log_requests:
                logger.info(
                    "request_completed",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_ms=round((time.monotonic() - started) * 1000, 2),
                )
            return response

        except Exception:
            # The app's unhandled-exception handler builds the 500 response.
            logger.exception("request_failed", method=request.method, path=request.url.path)
            raise

        finally:
            clear_request_context()
