from __future__ import annotations

import logging
import time

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .db import dispose_engines
from .metrics import gauge_dec, gauge_inc, render_prometheus, summary_observe
from .routers import panes as panes_router
from .schemas import HealthResponse

logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request duration (ms) and in-flight gauge for API endpoints
@app.middleware("http")
async def _metrics_mw(request: Request, call_next):
    path = request.url.path or ""
    method = request.method or "GET"
    if not path.startswith("/api/"):
        return await call_next(request)
    labels = {"path": path, "method": method}
    gauge_inc("app_active_requests", 1.0, labels)
    started = time.perf_counter()
    try:
        return await call_next(request)
    finally:
        gauge_dec("app_active_requests", 1.0, labels)
        summary_observe("app_request_duration_ms", int((time.perf_counter() - started) * 1000), labels)


app.include_router(panes_router.router, prefix="/api")


@app.get("/api/healthz", response_model=HealthResponse)
async def healthz() -> HealthResponse:
    return HealthResponse(status="ok", app=settings.app_name, env=settings.environment)


@app.get("/api/metrics")
async def metrics() -> Response:
    body = render_prometheus()
    return Response(content=body, media_type="text/plain; version=0.0.4; charset=utf-8")


@app.on_event("shutdown")
async def _shutdown():
    dispose_engines()
    logger.info("engines disposed")


def run() -> None:
    import uvicorn

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
    uvicorn.run(app, host="0.0.0.0", port=8000, proxy_headers=True)
