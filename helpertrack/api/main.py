"""
helpertrack.api.main — FastAPI application entry point
=======================================================

Run with::

    uvicorn helpertrack.api.main:app --port 3000
    # or
    python -m helpertrack.api
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

load_dotenv()

from helpertrack.api.deps import get_config, get_engine  # noqa: E402
from helpertrack.api.routes.progress import router as progress_router  # noqa: E402
from helpertrack.api.routes.public import router as public_router  # noqa: E402
from helpertrack.api.routes.users import router as users_router  # noqa: E402
from helpertrack.database.engine import init_db  # noqa: E402
from helpertrack.errors import HelperError  # noqa: E402

logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Resolve allowed CORS origins from ``CORS_ALLOW_ORIGINS`` (comma-separated).

    Defaults to ``*``: the forum userscript runs on the forum's own origin.
    """
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if raw:
        return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]
    return ["*"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle — ensure the schema, warm the engine."""
    cfg = get_config()
    engine = get_engine()
    init_db(engine)
    logger.info("%s API started — engine ready (%s)", cfg.service_name, engine.url.database)
    yield
    logger.info("%s API shutting down", cfg.service_name)


app = FastAPI(
    title="helpertrack API",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(HelperError)
async def helper_error_handler(request: Request, exc: HelperError) -> JSONResponse:
    """Render domain errors as JSON with their mapped status code."""
    if exc.is_retryable:
        logger.warning("%s %s → %s", request.method, request.url.path, exc)
    elif exc.http_status >= 500:
        logger.error("%s %s → %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


# Mount routers
app.include_router(progress_router, prefix="/api")
app.include_router(users_router, prefix="/api")
app.include_router(public_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}
