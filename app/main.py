"""FastAPI Heartbeat. Lean."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

import os
import re
import time
import uuid
import logging
from datetime import datetime, timezone
from typing import Any, Dict

from app.core.config import get_settings
from app.db.supabase import get_supabase
from app.features.garden.endpoints import router as garden_router
from app.features.leaderboard.endpoints import router as leaderboard_router
from app.features.metrics.endpoints import router as metrics_router
from app.features.progress.endpoints import router as progress_router

_settings = get_settings()
logging.basicConfig(
    level=logging.DEBUG if _settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

app = FastAPI(title=_settings.app_name)
_START_TIME = datetime.now(timezone.utc)


# ------------------------
# CORS Setup
# ------------------------
def _split_env_csv(name: str, default: str = ""):
    raw = os.getenv(name, default)
    return [o.strip().rstrip("/") for o in raw.split(",") if o.strip()]


_FRONTEND_ORIGINS = _split_env_csv(
    "ALLOW_ORIGINS",
    "http://localhost:5173,http://localhost:3000,http://127.0.0.1:5173,http://127.0.0.1:3000",
)

_CORS_ORIGIN_REGEX = re.compile(r"https?://(localhost|127\.0\.0\.1)(:\d+)?", re.I)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_FRONTEND_ORIGINS,
    allow_origin_regex=_CORS_ORIGIN_REGEX.pattern,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ------------------------
# Custom Middlewares
# ------------------------
@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    incoming = request.headers.get("X-Request-Id") or request.headers.get("X-Request-ID")
    req_id = incoming or str(uuid.uuid4())
    request.state.request_id = req_id
    logger = logging.getLogger("request")
    logger.info("request.start", extra={"request_id": req_id, "path": request.url.path, "method": request.method})
    t0 = time.perf_counter()
    response = await call_next(request)
    dt = int((time.perf_counter() - t0) * 1000)
    response.headers["X-Request-Id"] = req_id
    logger.info(
        "request.end",
        extra={"request_id": req_id, "path": request.url.path, "status_code": response.status_code, "duration_ms": dt},
    )
    return response


# ------------------------
# Routers
# ------------------------
app.include_router(progress_router)
app.include_router(garden_router)
app.include_router(metrics_router)
app.include_router(leaderboard_router)


# ------------------------
# Meta endpoints
# ------------------------
@app.get("/", tags=["meta"], summary="API Root")
async def root():
    return {
        "name": _settings.app_name,
        "status": "ok",
        "docs": "/docs",
        "health": "/healthz",
    }


@app.get("/healthz", tags=["meta"], summary="Liveness / readiness probe")
async def healthz() -> Dict[str, Any]:
    now = datetime.now(timezone.utc)
    uptime_seconds = (now - _START_TIME).total_seconds()
    store_status: str = "unknown"
    store_latency_ms: float | None = None

    if not _settings.store_configured:
        store_status = "missing-config"
    else:
        try:
            start = time.perf_counter()
            await get_supabase()
            store_latency_ms = round((time.perf_counter() - start) * 1000, 2)
            store_status = "ok"
        except Exception as e:
            store_status = f"error:{type(e).__name__}"

    return {
        "status": "ok" if store_status == "ok" else "degraded",
        "time_utc": now.isoformat(),
        "uptime_seconds": round(uptime_seconds, 2),
        "version": os.getenv("APP_VERSION", "dev"),
        "environment": "debug" if _settings.debug else "prod",
        "components": {
            "record_store": (
                {"status": store_status, "latency_ms": store_latency_ms}
                if store_status == "ok"
                else {"status": store_status}
            ),
        },
        "counts": {"routes": len(app.routes)},
    }
