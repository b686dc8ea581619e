"""Prometheus metrics for the marketplace API."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, ClassVar

from prometheus_client import Counter, Histogram

if TYPE_CHECKING:
    from starlette.types import ASGIApp, Message, Receive, Scope, Send

SQI_COMPUTATIONS = Counter(
    "quality_sqi_computations_total",
    "Total Service Quality Index computations",
    ["period", "classification"],
)

SQI_COMPUTATION_TIME = Histogram(
    "quality_sqi_computation_seconds",
    "Time to compute and persist a Service Quality Index",
    ["period"],
)

API_ERRORS = Counter(
    "api_errors_total",
    "API error responses",
    ["status_code"],  # 400, 401, 403, 404, 409, 500
)

REQUEST_COUNT = Counter(
    "http_requests_total",
    "HTTP requests handled",
    ["method", "route", "status_code"],
)

REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "route"],
)


class ObservabilityMiddleware:
    """Record request counts and latency per matched route."""

    EXEMPT_PATHS: ClassVar[set[str]] = {"/metrics"}

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope.get("path") in self.EXEMPT_PATHS:
            await self.app(scope, receive, send)
            return

        started = time.perf_counter()
        status_holder = {"code": 500}

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                status_holder["code"] = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            route = scope.get("route")
            # Templated path keeps label cardinality bounded.
            route_label = getattr(route, "path", None) or "unmatched"
            method = scope.get("method", "GET")
            REQUEST_COUNT.labels(method=method, route=route_label, status_code=str(status_holder["code"])).inc()
            REQUEST_LATENCY.labels(method=method, route=route_label).observe(time.perf_counter() - started)
