"""
TechDeep API — entry point.

Startup sequence:
  1. Configure OTel tracing (→ Jaeger via OTLP)
  2. Connect to Redis (key-value store)
  3. Start the auth provider HTTP client
  4. Expose Prometheus /metrics endpoint

Every route is mounted under settings.api_prefix.
"""
import logging
import time

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from app.config import settings
from app.errors import ApiError
from app.telemetry import REQUEST_LATENCY, setup_tracing, instrument_app
from app.clients.auth_client import auth_client
from app.clients.redis_client import close_redis, init_redis
from app.routers import drafts, posts, users

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)

# Set up tracing before the app is created so all imports are instrumented
setup_tracing()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage startup and shutdown of all external connections."""
    logger.info("Starting TechDeep API (env=%s)", settings.environment)

    await init_redis()
    await auth_client.start()

    logger.info("All services connected. API ready.")
    yield

    logger.info("Shutting down...")
    await auth_client.stop()
    await close_redis()


app = FastAPI(
    title="TechDeep API",
    description=(
        "Community long-form technical posts: publishing, upvotes, "
        "bookmarks, comments, drafts and follows."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Access log + latency metric for every request, unexpected failures included.

    Unhandled exceptions become the generic 500 here rather than in
    Starlette's outermost error middleware, so the response still passes
    back through CORS.
    """
    start_time = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        response = JSONResponse(status_code=500, content={"error": "Internal server error"})
    elapsed = time.perf_counter() - start_time

    route = request.scope.get("route")
    REQUEST_LATENCY.labels(
        method=request.method,
        route=getattr(route, "path", "unmatched"),
    ).observe(elapsed)
    logger.info(
        "%s %s → %d (%.1fms)",
        request.method,
        request.url.path,
        response.status_code,
        elapsed * 1000,
    )
    return response


# Added after log_requests so it wraps it: the generic 500 gets CORS headers too
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_headers=["Content-Type", "Authorization"],
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    expose_headers=["Content-Length"],
    max_age=600,
)


# ── Error mapping ──────────────────────────────────────────────────────────
@app.exception_handler(ApiError)
async def handle_api_error(request: Request, exc: ApiError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError):
    logger.info("Invalid request body on %s: %s", request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})


# ── Routers ────────────────────────────────────────────────────────────────
app.include_router(users.router, prefix=settings.api_prefix, tags=["Users"])
app.include_router(posts.router, prefix=settings.api_prefix, tags=["Posts"])
app.include_router(drafts.router, prefix=settings.api_prefix, tags=["Drafts"])

# ── Prometheus metrics endpoint ────────────────────────────────────────────
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

# ── OTel FastAPI instrumentation ──────────────────────────────────────────
instrument_app(app)


@app.get(f"{settings.api_prefix}/health", tags=["Health"])
async def health():
    return {"status": "ok"}
