"""
Health and metrics endpoint.

Runs beside the payment pipeline as an independent asyncio task and
shares nothing with it except the Prometheus registry, which it only
reads. It never blocks the pipeline; a bind failure is logged and the
payment carries on.

Routes:
    GET /health   → "OK"
    GET /metrics  → Prometheus text exposition
"""

from __future__ import annotations

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST

from stellar_remit.observability import PrometheusMetrics

logger = structlog.get_logger(__name__)


def create_health_app(metrics: PrometheusMetrics) -> FastAPI:
    app = FastAPI(title="stellar-remit health", docs_url=None, redoc_url=None, openapi_url=None)

    @app.get("/health", response_class=PlainTextResponse)
    async def health_check() -> str:
        return "OK"

    @app.get("/metrics")
    async def metrics_handler() -> Response:
        return Response(content=metrics.export(), media_type=CONTENT_TYPE_LATEST)

    return app


class HealthServer:
    """uvicorn.Server wrapper that can be started and stopped as a task.

    Uses ``uvicorn.Server.serve()`` rather than ``uvicorn.run()`` so it
    shares the caller's event loop.
    """

    def __init__(self, metrics: PrometheusMetrics, host: str = "127.0.0.1", port: int = 3000) -> None:
        self.host = host
        self.port = port
        config = uvicorn.Config(
            app=create_health_app(metrics),
            host=host,
            port=port,
            log_level="warning",
            access_log=False,
            lifespan="off",
        )
        self._server = uvicorn.Server(config)

    async def serve(self) -> None:
        logger.info("health_server_listening", url=f"http://{self.host}:{self.port}")
        try:
            await self._server.serve()
        except (OSError, SystemExit) as exc:
            logger.error("health_server_failed", error=str(exc))

    def stop(self) -> None:
        self._server.should_exit = True
