import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import appointments, slots
from app.core.config import settings, _ENV_FILE
from app.core.db import init_db

if os.getenv("ENV") != "production":
    logging.basicConfig(level=logging.DEBUG)
else:
    logging.basicConfig(
        level=logging.INFO,
        format='{"time": "%(asctime)s", "level": "%(levelname)s", "message": "%(message)s"}',
    )
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Loading .env from: %s (exists: %s)", _ENV_FILE, _ENV_FILE.exists())
    if settings.create_tables_on_startup:
        await init_db()
        logger.info("Database tables created on startup")
    logger.info(
        "Agenda grid %s-%s every %d min; default session %d min",
        settings.agenda_start,
        settings.agenda_end,
        settings.slot_duration_minutes,
        settings.default_session_minutes,
    )
    yield


app = FastAPI(
    title="Practice Agenda API",
    description="Appointment booking for solo practitioners: recurrence, conflicts, confirmation",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

app.include_router(slots.router, prefix="/api/v1")
app.include_router(appointments.router, prefix="/api/v1")


def _error_response(request: Request, status_code: int, detail: object) -> JSONResponse:
    # Error responses bypass CORSMiddleware, so the browser needs the headers here
    origins = settings.cors_origins_list
    origin = request.headers.get("origin")
    headers = {"Access-Control-Allow-Credentials": "true"}
    if origins:
        headers["Access-Control-Allow-Origin"] = origin if origin in origins else origins[0]
    return JSONResponse(status_code=status_code, content={"detail": detail}, headers=headers)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    response = _error_response(request, exc.status_code, exc.detail)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(request, 500, f"{type(exc).__name__}: {exc}")


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}
