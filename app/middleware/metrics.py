# app/middleware/metrics.py
import time
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


def new_metrics() -> dict:
    return {
        "requests": 0,
        "total_response_ms": 0.0,
        "orders_placed": 0,
        "duplicate_payments": 0,
    }


def get_metrics(app) -> dict:
    """Lazily create the counters; app.state may be empty if startup never ran."""
    metrics = getattr(app.state, "metrics", None)
    if metrics is None:
        metrics = new_metrics()
        app.state.metrics = metrics
    return metrics


def count(app, key: str) -> None:
    metrics = get_metrics(app)
    metrics[key] = metrics.get(key, 0) + 1


class MetricsMiddleware(BaseHTTPMiddleware):
    """
    In-process counters (single worker):
      - total requests
      - total response time (ms)
      - orders placed / duplicate payments (incremented by the order routes)
    NOTE: do NOT touch app.state in __init__; it may not be available yet while middleware stack builds.
    """

    def __init__(self, app, dispatch: Callable = None):
        super().__init__(app, dispatch=dispatch)

    async def dispatch(self, request: Request, call_next):
        metrics = get_metrics(request.app)

        start = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000.0

        metrics["requests"] = metrics.get("requests", 0) + 1
        metrics["total_response_ms"] = metrics.get("total_response_ms", 0.0) + elapsed_ms

        return response
