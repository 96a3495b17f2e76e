from __future__ import annotations

import logging
from time import monotonic

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.trustedhost import TrustedHostMiddleware

from tasktrack.config import settings
from tasktrack.errors import TrackerError
from tasktrack.metrics import runtime_metrics
from tasktrack.routers.auth import router as auth_router
from tasktrack.routers.board import router as board_router
from tasktrack.routers.projects import router as projects_router
from tasktrack.routers.sections import router as sections_router
from tasktrack.routers.system_status import router as system_status_router
from tasktrack.routers.tasks import router as tasks_router

logging.basicConfig(
  level=getattr(logging, settings.log_level.upper(), logging.INFO),
  format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("tasktrack")

app = FastAPI(
  title="TaskTrack API",
  version="0.1.0",
  docs_url="/docs" if settings.api_docs_enabled else None,
  redoc_url="/redoc" if settings.api_docs_enabled else None,
  openapi_url="/openapi.json" if settings.api_docs_enabled else None,
)


@app.exception_handler(TrackerError)
async def _tracker_error_handler(request, exc: TrackerError) -> JSONResponse:
  logger.debug("%s %s rejected: %s %s", request.method, request.url.path, exc.kind, exc.message)
  return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_detail()})


app.add_middleware(
  CORSMiddleware,
  allow_origins=settings.cors_origin_list(),
  allow_origin_regex=settings.cors_origin_regex,
  allow_credentials=True,
  allow_methods=["*"],
  allow_headers=["*"],
)
app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.trusted_host_list())

app.include_router(auth_router)
app.include_router(projects_router)
app.include_router(sections_router)
app.include_router(board_router)
app.include_router(tasks_router)
app.include_router(system_status_router)


@app.middleware("http")
async def _request_metrics_middleware(request, call_next):
  start = monotonic()
  response = await call_next(request)
  elapsed_ms = (monotonic() - start) * 1000.0
  runtime_metrics.observe_request(request.url.path, response.status_code, elapsed_ms)
  response.headers.setdefault("X-Content-Type-Options", "nosniff")
  response.headers.setdefault("X-Frame-Options", "DENY")
  response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
  return response


@app.get("/health")
async def health() -> dict:
  return {"ok": True}


@app.get("/version")
async def version() -> dict:
  return {"version": settings.app_version, "buildSha": settings.build_sha}
