"""FastAPI application wiring the CSP pipeline around every route."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, Mapping

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import Response

from cspguard.config.loader import CSPSettings, build_options, get_settings
from cspguard.health import router as health_router
from cspguard.logging_config import setup_logging
from cspguard.middleware.content_security_policy import ContentSecurityPolicy
from cspguard.middleware.nonce import NonceInjector
from cspguard.middleware.pipeline import MiddlewarePipeline, RequestContext

logger = structlog.get_logger()


def _build_pipeline(options: Mapping[str, Any]) -> MiddlewarePipeline:
    """Build the ordered middleware pipeline.

    Response hooks run in reverse registration order, so ContentSecurityPolicy
    is registered first: NonceInjector sets the nonce on the way in and the
    header is rendered last on the way out, after the route has run.
    """
    pipeline = MiddlewarePipeline()
    pipeline.add(ContentSecurityPolicy(options))  # 0: renders header last on response
    pipeline.add(NonceInjector())                 # 1: per-request nonce
    return pipeline


def create_app(
    options: Mapping[str, Any] | None = None,
    settings: CSPSettings | None = None,
) -> FastAPI:
    """Create the application. Raises ContentSecurityPolicyError on a bad policy."""
    settings = settings or get_settings()
    setup_logging(log_level=settings.log_level, json_format=settings.log_json)

    if options is None:
        options = build_options(settings)
    pipeline = _build_pipeline(options)
    csp = pipeline.get_middleware(ContentSecurityPolicy)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("csp_service_started", header=csp.header_name, directives=list(csp.policy.names))
        yield
        logger.info("csp_service_stopped")

    app = FastAPI(title="cspguard", lifespan=lifespan)
    app.state.pipeline = pipeline
    app.state.csp_header_name = csp.header_name
    app.include_router(health_router)

    @app.middleware("http")
    async def run_pipeline(request: Request, call_next) -> Response:
        context = RequestContext(request=request)
        short_circuit = await pipeline.process_request(request, context)
        response = short_circuit if short_circuit is not None else await call_next(request)
        return await pipeline.process_response(response, context)

    return app
