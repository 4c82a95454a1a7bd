import os
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from .config import RouterSettings, load_settings
from .errors import UpstreamError
from .logging_conf import configure_logging
from .metrics import setup_metrics
from .proxy_router import PROVENANCE_HEADER, EdgeProxy, router as proxy_router


service_name = os.getenv("SERVICE_NAME", "edge-router")
logger = configure_logging(service_name)


def setup_tracing():
    otlp_endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
    if not otlp_endpoint:
        return
    provider = TracerProvider(resource=Resource.create({SERVICE_NAME: service_name}))
    exporter = OTLPSpanExporter(endpoint=otlp_endpoint.rstrip("/") + "/v1/traces")
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)


def create_app(
    settings: Optional[RouterSettings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    settings = settings or load_settings()
    app = FastAPI(title="Edge Router", version="0.1.0")
    app.state.settings = settings
    metrics = setup_metrics(app)

    @app.on_event("startup")
    async def on_startup():
        setup_tracing()
        client = httpx.AsyncClient(
            transport=transport,
            follow_redirects=True,
            timeout=settings.upstream_timeout,
        )
        app.state.proxy = EdgeProxy(settings, client, logger=logger, record=metrics.record)
        logger.info(
            "edge-router startup",
            extra={
                "service": service_name,
                "primary": settings.primary.origin,
                "secondary": settings.secondary.origin if settings.secondary else None,
                "cdn_prefixes": list(settings.prefixes),
            },
        )

    @app.on_event("shutdown")
    async def on_shutdown():
        await app.state.proxy.client.aclose()
        logger.info("edge-router shutdown", extra={"service": service_name})

    @app.exception_handler(UpstreamError)
    async def upstream_error_handler(request: Request, exc: UpstreamError):
        logger.error(str(exc), extra={"service": service_name, "provider": exc.provider})
        return JSONResponse(
            status_code=502,
            content={"detail": "upstream error"},
            headers={PROVENANCE_HEADER: exc.provider, "cache-control": settings.cache_control},
        )

    @app.middleware("http")
    async def add_correlation_id(request: Request, call_next):
        cid = request.headers.get("X-Correlation-Id") or request.headers.get("X-Request-Id") or "anon"
        request.state.cid = cid
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("unhandled error", extra={"cid": cid, "service": service_name})
            return JSONResponse(status_code=500, content={"detail": "internal error"})
        response.headers["X-Correlation-Id"] = cid
        return response

    @app.get("/_edge/health")
    def health():
        return {"status": "ok", "service": service_name}

    # el catch-all va al final para no tapar /_edge/*
    app.include_router(proxy_router)
    return app


app = create_app()
