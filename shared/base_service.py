"""
FastAPI plumbing shared by the relying party and its test harnesses.
"""

import time
from typing import Dict, Optional

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from shared.config import ServiceConfig, get_config
from shared.errors import RelyingPartyException
from shared.logging import clear_context, configure_logging, get_logger, set_request_id
from shared.metrics import get_metrics_collector

VERSION = "1.0.0"


class BaseService:
    """Owns the FastAPI app, request logging, health and metrics routes.

    Subclasses add their own routes after ``__init__`` and report their
    upstream configuration through ``_check_dependencies``.
    """

    def __init__(self, service_name: str, port: int, config: Optional[ServiceConfig] = None):
        self.service_name = service_name
        self.port = port
        self.config = config or get_config(service_name, port)
        configure_logging(service_name, self.config.log_level)
        self.logger = get_logger(f"{service_name}.http")
        self.metrics = get_metrics_collector(service_name)
        self.started = time.monotonic()

        self.app = FastAPI(title="OpenID Connect Relying Party", version=VERSION)
        self._install_request_logging()
        self._install_error_handlers()
        self._install_operational_routes()

    def _install_request_logging(self):
        @self.app.middleware("http")
        async def log_request(request: Request, call_next):
            set_request_id(request.headers.get("x-request-id"))
            started = time.perf_counter()
            try:
                response = await call_next(request)
                elapsed = time.perf_counter() - started
                self.metrics.record_http_request(request.method, request.url.path, response.status_code, elapsed)
                self.logger.info(
                    "Request handled",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_ms=round(elapsed * 1000, 2),
                )
                return response
            finally:
                clear_context()

    def _install_error_handlers(self):
        @self.app.exception_handler(RelyingPartyException)
        async def relying_party_error(request: Request, exc: RelyingPartyException):
            self.logger.warning("Login error", code=exc.code, message=exc.message, details=exc.details)
            self.metrics.record_error(exc.code)
            return JSONResponse(status_code=exc.status or 400, content=exc.to_response().model_dump())

        @self.app.exception_handler(Exception)
        async def unexpected_error(request: Request, exc: Exception):
            self.logger.error("Unhandled exception", error=str(exc), exc_info=True)
            self.metrics.record_error("INTERNAL_ERROR")
            return JSONResponse(
                status_code=500,
                content={"code": "INTERNAL_ERROR", "message": "Internal server error", "details": {}},
            )

    def _install_operational_routes(self):
        @self.app.get("/health")
        async def health():
            """Liveness plus a summary of the configured upstreams."""
            dependencies = await self._check_dependencies()
            self.metrics.record_health_check("ok")
            return {
                "service": self.service_name,
                "status": "ok",
                "version": VERSION,
                "uptime_seconds": round(time.monotonic() - self.started, 3),
                "dependencies": dependencies,
            }

        @self.app.get("/metrics")
        async def metrics():
            return Response(content=generate_latest(self.metrics.registry), media_type=CONTENT_TYPE_LATEST)

    async def _check_dependencies(self) -> Dict[str, str]:
        return {}

    def run(self):
        import uvicorn
        uvicorn.run(self.app, host=self.config.host, port=self.config.port, log_level=self.config.log_level.lower())
