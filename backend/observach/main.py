import json
import logging
import time
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from observach import __version__
from observach.config import get_settings
from observach.database import SessionLocal, init_db
from observach.errors import ObservachError
from observach.routers import admin_router, auth_router, observations_router
from observach.routers.auth import limiter
from observach.seed import seed_admin
from observach.storage import UPLOADS_URL_PREFIX, get_photo_storage

settings = get_settings()
logger = logging.getLogger("observach")
logging.basicConfig(level=settings.log_level.upper())


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the schema, prepare photo storage and seed the admin account."""
    init_db()
    get_photo_storage().ensure_ready()
    db = SessionLocal()
    try:
        seed_admin(db)
    finally:
        db.close()
    logger.info("Observach API ready (env=%s)", settings.app_env)
    yield


app = FastAPI(
    title="Observach API",
    description="Wildlife observation submissions with admin moderation, votes and comments",
    version=__version__,
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
)


@app.exception_handler(ObservachError)
async def observach_error_handler(request: Request, exc: ObservachError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "internal_error", "detail": "An internal server error occurred."},
    )


@app.middleware("http")
async def structured_logging_middleware(request: Request, call_next):
    start = time.perf_counter()
    req_id = request.headers.get("X-Request-ID", str(uuid4()))
    request.state.request_id = req_id

    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        response.headers["X-Request-ID"] = req_id
        return response
    finally:
        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        logger.info(json.dumps({
            "request_id": req_id,
            "path": request.url.path,
            "method": request.method,
            "status": status_code,
            "duration_ms": duration_ms,
        }))


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """Set basic security headers for all API responses."""
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


app.include_router(auth_router)
app.include_router(observations_router)
app.include_router(admin_router)

if settings.storage_backend == "local":
    settings.upload_dir.mkdir(parents=True, exist_ok=True)
    app.mount(UPLOADS_URL_PREFIX, StaticFiles(directory=str(settings.upload_dir)), name="uploads")

Instrumentator().instrument(app).expose(app, include_in_schema=False)


@app.get("/health")
def health_check():
    return {"status": "healthy"}
