"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fundwatch.api.funds import router as funds_router
from fundwatch.api.rules import router as rules_router
from fundwatch.api.user_funds import router as user_funds_router
from fundwatch.errors import (
    DirectoryVersionChanged,
    NotificationError,
    RuleEvaluationError,
    UpstreamUnavailable,
)
from fundwatch.logging_config import setup_logging
from fundwatch.models.database import close_db, init_db
from fundwatch.tasks.scheduler import start_scheduler, stop_scheduler

logger = logging.getLogger(__name__)

RETRY_MESSAGE = "Data temporarily unavailable, please retry"


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    await init_db()
    await start_scheduler()
    yield
    stop_scheduler()
    await close_db()


app = FastAPI(title="Fund Watch", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(user_funds_router)
app.include_router(funds_router)
app.include_router(rules_router)


@app.exception_handler(DirectoryVersionChanged)
async def directory_version_changed_handler(request: Request, exc: DirectoryVersionChanged):
    return JSONResponse(
        status_code=409,
        content={
            "detail": "Fund list was refreshed, please reload from the first page",
            "version": exc.current,
        },
    )


@app.exception_handler(UpstreamUnavailable)
@app.exception_handler(RuleEvaluationError)
async def upstream_unavailable_handler(request: Request, exc: Exception):
    logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=503, content={"detail": RETRY_MESSAGE})


@app.exception_handler(NotificationError)
async def notification_error_handler(request: Request, exc: NotificationError):
    logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=502, content={"detail": "Notification could not be delivered"})


@app.get("/api/health")
async def health_check():
    return {"status": "ok"}
