from __future__ import annotations

import logging
import os
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import Counter, Histogram
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from rsv.api.error_handling import register_exception_handlers
from rsv.api.middleware.request_id import RequestIDMiddleware
from rsv.api.routes.availability import router as availability_router
from rsv.api.routes.health import router as health_router
from rsv.api.routes.metrics import router as metrics_router
from rsv.api.routes.reservations import router as reservations_router
from rsv.api.routes.table_blocks import router as table_blocks_router
from rsv.domain.calendar.slots import format_slot
from rsv.infrastructure.config.settings import get_calendar
from rsv.infrastructure.observability.logging_config import configure_logging
from rsv.infrastructure.observability.otel import configure_otel

logger = logging.getLogger("rsv.api.access")

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total number of HTTP requests",
    ["method", "route", "status_code"],
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "route"],
)


def _cors_allow_origins() -> list[str]:
    env = os.getenv("APP_ENV", "dev").lower()
    if env in {"dev", "test", "local"}:
        return ["*"]

    raw_value = os.getenv("CORS_ALLOW_ORIGINS", "")
    return [origin.strip() for origin in raw_value.split(",") if origin.strip()]


def _route_template(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


class AccessLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        path = request.url.path
        method = request.method
        try:
            response = await call_next(request)
        except Exception:
            duration_ms = (time.perf_counter() - started) * 1000
            route = _route_template(request)
            REQUEST_COUNT.labels(method=method, route=route, status_code="500").inc()
            REQUEST_LATENCY.labels(method=method, route=route).observe(duration_ms / 1000)
            logger.exception(
                "request_error",
                extra={
                    "method": method,
                    "path": path,
                    "status_code": 500,
                    "duration_ms": round(duration_ms, 2),
                },
            )
            raise

        duration_ms = (time.perf_counter() - started) * 1000
        route = _route_template(request)
        REQUEST_COUNT.labels(
            method=method, route=route, status_code=str(response.status_code)
        ).inc()
        REQUEST_LATENCY.labels(method=method, route=route).observe(duration_ms / 1000)
        logger.info(
            "request_complete",
            extra={
                "method": method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    calendar = get_calendar()
    app.state.calendar = calendar
    logging.getLogger("rsv.api").info(
        "operating_calendar_loaded",
        extra={
            "opens": format_slot(calendar.default.start_time),
            "last_arrival": format_slot(calendar.default.last_arrival_time),
            "special_dates": [item.date.isoformat() for item in calendar.overrides],
        },
    )
    yield


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(title="Reservation Engine", version="0.1.0", lifespan=lifespan)
    register_exception_handlers(app)
    app.include_router(health_router)
    app.include_router(metrics_router)
    app.include_router(availability_router)
    app.include_router(reservations_router)
    app.include_router(table_blocks_router)

    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_allow_origins(),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-Id"],
    )

    configure_otel(app)
    return app


app = create_app()
