"""Request/response logging with a per-request correlation id."""

import json
import logging
import time
from typing import Any, Callable, Dict, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from recipekeeper.core.request_id import generate_request_id, set_request_id

logger = logging.getLogger(__name__)

SENSITIVE_KEYS = ("api_key", "password", "token", "secret", "auth")
# aiResponse and patch bodies can be long; log a prefix only
MAX_LOGGED_STRING = 200


def mask_sensitive_data(data: Any) -> Any:
    """Recursively mask secrets and truncate long strings."""
    if isinstance(data, dict):
        return {
            key: "***" if any(s in str(key).lower() for s in SENSITIVE_KEYS) else mask_sensitive_data(value)
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [mask_sensitive_data(item) for item in data]
    if isinstance(data, str) and len(data) > MAX_LOGGED_STRING:
        return f"{data[:MAX_LOGGED_STRING]}... ({len(data)} chars)"
    return data


def _decode_body(body: bytes) -> Any:
    try:
        return json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return body.decode("utf-8", errors="ignore")[:500]


def _replay_body(request: Request, body: bytes) -> None:
    """
    Let the route read a body the middleware already consumed.

    The first receive() returns the cached body; later calls go to the real
    channel so a client disconnect still reaches Starlette.
    """
    original_receive = request._receive
    sent = False

    async def receive():
        nonlocal sent
        if not sent:
            sent = True
            return {"type": "http.request", "body": body, "more_body": False}
        message = await original_receive()
        if message["type"] == "http.request" and not message.get("more_body"):
            return {"type": "http.disconnect"}
        return message

    request._receive = receive


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Assigns ``X-Request-ID`` and logs each request with its JSON body."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = generate_request_id()
        set_request_id(request_id)
        request.state.request_id = request_id
        start = time.perf_counter()
        context = {"request_id": request_id, "method": request.method, "path": request.url.path}

        params: Dict[str, Any] = {}
        if request.query_params:
            params["query"] = dict(request.query_params)

        body: Optional[bytes] = None
        if "application/json" in request.headers.get("content-type", "").lower():
            body = await request.body()
            if body:
                params["body"] = _decode_body(body)
            _replay_body(request, body)

        logger.info(
            f"API Request: {request.method} {request.url.path}",
            extra={
                **context,
                "params": mask_sensitive_data(params),
                "client_ip": request.client.host if request.client else None,
            },
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                f"API Error: {request.method} {request.url.path} - {e}",
                extra={**context, "process_time_ms": _elapsed_ms(start)},
                exc_info=True,
            )
            raise

        logger.info(
            f"API Response: {request.method} {request.url.path} - {response.status_code}",
            extra={**context, "status_code": response.status_code, "process_time_ms": _elapsed_ms(start)},
        )
        response.headers["X-Request-ID"] = request_id
        return response
