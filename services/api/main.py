"""
Test Grader - Backend API
FastAPI with pluggable storage backends: in-memory (default) and SQLite

Install dependencies:
pip install -e ".[test]"

Run server (from services/api):
uvicorn main:app --host 0.0.0.0 --port 8000
"""

import contextvars
import logging
import os
import time
import uuid

from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from adapters.base import StorageAdapter
from routers import mark_scheme as mark_scheme_router
from routers import pages as pages_router
from routers import results as results_router
from routers import settings as settings_router
from routers import tests as tests_router
from schemas import HealthCheck
from settings import Settings, get_settings

# ========== Request Context for Tracing ==========
request_id_var = contextvars.ContextVar('request_id', default=None)

# ============================================================================
# BACKEND CONFIGURATION
# ============================================================================
settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

STORAGE_BACKEND = settings.storage_backend.lower()

logger.info(f"🔧 Storage Backend: {STORAGE_BACKEND.upper()}")

# ============================================================================
# STORAGE ADAPTER INITIALIZATION
# ============================================================================

def build_storage_adapter(cfg: Settings) -> StorageAdapter:
    backend = cfg.storage_backend.lower()
    if backend == "memory":
        from adapters.memory import MemoryAdapter
        return MemoryAdapter()
    if backend == "sqlite":
        from adapters.sqlite import SqliteAdapter
        logger.info(f"Database: {cfg.db_url.split('://')[0]}")
        return SqliteAdapter.from_url(cfg.db_url)
    raise ValueError(f"Unknown STORAGE_BACKEND: {cfg.storage_backend}")


try:
    storage_adapter = build_storage_adapter(settings)
    logger.info(f"✓ {storage_adapter.backend_name} adapter initialized")
except Exception as e:
    logger.error(f"✗ Failed to initialize storage: {e}")
    raise

# ============================================================================
# APP
# ============================================================================

app = FastAPI(
    title="Test Grader API",
    description="Mark-scheme upload, answer-sheet extraction and scoring",
    version="1.0",
    docs_url="/docs",
    redoc_url="/redoc"
)
app.state.storage_adapter = storage_adapter


# ========== Request Tracing Middleware ==========
@app.middleware("http")
async def request_tracing_middleware(request, call_next):
    """Add request_id and timing to all requests."""
    request_id = str(uuid.uuid4())[:8]
    request_id_var.set(request_id)
    started = time.time()

    response = await call_next(request)

    latency_ms = round((time.time() - started) * 1000, 2)
    logger.info(
        f"[{request_id}] {request.method} {request.url.path} "
        f"-> {response.status_code} ({latency_ms} ms)"
    )

    response.headers["X-Request-ID"] = request_id
    return response


ALLOWED_ORIGINS = settings.get_origins_list()

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    logger.error(f"Unhandled exception [{request_id_var.get()}]: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"}
    )

# ============================================================================
# ENDPOINTS
# ============================================================================
@app.get("/health", response_model=HealthCheck)
async def health_check():
    """Health check endpoint"""
    adapter = app.state.storage_adapter
    try:
        adapter.list_tests()
        return HealthCheck(status="healthy", backend=adapter.backend_name, version="1.0")
    except Exception as e:
        logger.error(f"Health check failed: {str(e)}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "backend": adapter.backend_name, "error": str(e)}
        )


app.include_router(tests_router.router, prefix="/api")
app.include_router(mark_scheme_router.router, prefix="/api")
app.include_router(pages_router.router, prefix="/api")
app.include_router(results_router.router, prefix="/api")
app.include_router(settings_router.router, prefix="/api")


@app.on_event("startup")
async def startup_event():
    logger.info("Test Grader API starting up...")
    logger.info(f"Storage Backend: {STORAGE_BACKEND.upper()}")
    logger.info(f"Empty answer policy: {settings.empty_answer_policy}")
    logger.info(f"Allowed origins: {ALLOWED_ORIGINS}")
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY is not set; page processing will fail until it is")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Test Grader API shutting down...")
    engine = getattr(app.state.storage_adapter, "engine", None)
    if engine is not None:
        engine.dispose()


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run("main:app", host="0.0.0.0", port=port, reload=False)
