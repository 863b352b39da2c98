"""Per-route request timing, exposed through ``/health/metrics``."""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)


@dataclass
class RouteStats:
    count: int = 0
    errors: int = 0
    slow: int = 0
    total_ms: float = 0.0
    max_ms: float = 0.0

    def as_dict(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "errors": self.errors,
            "slow": self.slow,
            "avg_ms": round(self.total_ms / self.count, 2) if self.count else 0.0,
            "max_ms": round(self.max_ms, 2),
        }


class PerformanceMetrics:
    """
    Request timings keyed by route template (``POST /recipes/{recipe_id}/apply``).

    Scrape and apply calls wait on remote pages and LLMs, so they are tracked
    separately from the cheap read endpoints.
    """

    def __init__(self, slow_threshold: float = 2.0):
        self.slow_threshold = slow_threshold
        self.routes: Dict[str, RouteStats] = {}
        self._lock = threading.Lock()

    def record(self, route: str, duration: float, is_error: bool = False) -> None:
        duration_ms = duration * 1000
        with self._lock:
            stats = self.routes.setdefault(route, RouteStats())
            stats.count += 1
            stats.total_ms += duration_ms
            stats.max_ms = max(stats.max_ms, duration_ms)
            if is_error:
                stats.errors += 1
            if duration >= self.slow_threshold:
                stats.slow += 1

    def get_summary(self) -> Dict[str, Any]:
        with self._lock:
            routes = {route: stats.as_dict() for route, stats in sorted(self.routes.items())}
            total = sum(stats.count for stats in self.routes.values())
            errors = sum(stats.errors for stats in self.routes.values())
        return {
            "total_requests": total,
            "errors": errors,
            "error_rate": round(errors / total * 100, 2) if total else 0.0,
            "routes": routes,
        }


metrics = PerformanceMetrics()


def route_template(request: Request) -> str:
    """Matched route path, falling back to the raw path for 404s."""
    route = request.scope.get("route")
    path = getattr(route, "path", None) or request.url.path
    return f"{request.method} {path}"


class PerformanceMiddleware(BaseHTTPMiddleware):
    """Times each request, adds ``X-Response-Time`` and warns on slow calls."""

    def __init__(
        self,
        app: ASGIApp,
        slow_request_threshold: float = 5.0,
        very_slow_request_threshold: float = 30.0,
    ):
        super().__init__(app)
        self.slow_threshold = slow_request_threshold
        self.very_slow_threshold = very_slow_request_threshold
        metrics.slow_threshold = slow_request_threshold

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            metrics.record(route_template(request), time.perf_counter() - start, is_error=True)
            raise

        duration = time.perf_counter() - start
        route = route_template(request)
        metrics.record(route, duration, is_error=response.status_code >= 500)

        duration_ms = round(duration * 1000, 2)
        response.headers["X-Response-Time"] = f"{duration_ms}ms"

        if duration >= self.slow_threshold:
            level = logging.WARNING if duration >= self.very_slow_threshold else logging.INFO
            logger.log(
                level,
                f"Slow request: {route} took {duration_ms}ms",
                extra={
                    "request_id": getattr(request.state, "request_id", None),
                    "route": route,
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                },
            )
        return response
