"""FastAPI application entry point."""

from __future__ import annotations

import logging
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from drone_studio import __version__
from drone_studio.api import api_router
from drone_studio.config import settings
from drone_studio.database import Base, engine
from drone_studio.logging_config import request_id_var

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Configure unified logging before anything else
    from drone_studio.logging_config import setup_logging
    setup_logging("Server")

    import drone_studio.models  # noqa: F401  register all models with Base

    Base.metadata.create_all(bind=engine)
    logger.info(
        "Drone AI Studio %s ready (default language %s, stream delay %s ms)",
        __version__, settings.DEFAULT_LANGUAGE, settings.stream_delay_ms,
    )

    yield


app = FastAPI(title="Drone AI Studio API", version=__version__, lifespan=lifespan)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.CORS_ALLOW_ALL_ORIGINS else settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_api_requests(request: Request, call_next):
    request_id_var.set(uuid.uuid4().hex)
    start = time.perf_counter()
    response = await call_next(request)
    if request.url.path.startswith("/api"):
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info("%s %s %s in %dms", request.method, request.url.path, response.status_code, duration_ms)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are client errors (400), not 422."""
    logger.debug("Rejected %s %s: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(
        status_code=400,
        content={"detail": "Invalid request data", "errors": jsonable_errors(exc)},
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]


# API routes
app.include_router(api_router)


@app.get("/health")
def health():
    return {"status": "ok", "version": __version__}


def run() -> None:
    import uvicorn
    uvicorn.run("drone_studio.main:app", host="0.0.0.0", port=8000, log_config=None)


if __name__ == "__main__":
    run()
