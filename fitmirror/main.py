import os
import time
import hashlib
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import structlog

from .config import settings
from .routers.tryon import router as tryon_router
from .routers.photos import router as photos_router
from .routers.results import router as results_router


logger = structlog.get_logger("fitmirror")


app = FastAPI(title="FitMirror Try-On", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


def _request_id(request: Request) -> str:
    return hashlib.md5(f"{request.client.host if request.client else 'unknown'}{time.time()}".encode()).hexdigest()[:8]


def _validate_config() -> None:
    strict = os.getenv("STRICT_CONFIG", "0") == "1"
    errors = []
    provider = (settings.vto_provider or "replicate").lower()
    if provider != "mock" and not settings.replicate_api_token:
        errors.append("REPLICATE_API_TOKEN must be set for the replicate provider")
    if settings.fetch_timeout_seconds <= 0:
        errors.append("FETCH_TIMEOUT_SECONDS must be positive")
    if errors:
        if strict:
            raise RuntimeError("Configuration error: " + "; ".join(errors))
        else:
            for e in errors:
                logger.warning("config_warning", warning=e)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    request_id = _request_id(request)
    resp = None

    try:
        logger.info("request_started",
                   request_id=request_id,
                   path=str(request.url.path),
                   method=request.method,
                   client_ip=request.client.host if request.client else "unknown",
                   user_agent=request.headers.get("user-agent", "unknown"),
                   content_type=request.headers.get("content-type", "unknown"))

        resp = await call_next(request)
        return resp

    except Exception as e:
        duration_ms = int((time.time() - start) * 1000)
        logger.error("request_failed",
                    request_id=request_id,
                    path=str(request.url.path),
                    method=request.method,
                    error=str(e),
                    duration_ms=duration_ms,
                    exc_info=True)
        raise
    finally:
        duration_ms = int((time.time() - start) * 1000)
        status_code = getattr(resp, "status_code", 0) if resp else 0
        logger.info("request_completed",
                   request_id=request_id,
                   path=str(request.url.path),
                   method=request.method,
                   status=status_code,
                   duration_ms=duration_ms)


@app.exception_handler(Exception)
async def handle_exceptions(request: Request, exc: Exception):
    request_id = _request_id(request)

    logger.error("unhandled_exception",
                request_id=request_id,
                path=str(request.url.path),
                method=request.method,
                error=str(exc),
                error_type=type(exc).__name__,
                exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "error_code": "INTERNAL_ERROR",
            "request_id": request_id,
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
        }
    )


@app.get("/v1/health")
async def health():
    return {"status": "ok"}


@app.get("/v1/debug/status")
async def debug_status():
    """Debug endpoint to check storage and model configuration"""
    storage_status = "ok"
    try:
        os.makedirs(settings.storage_dir, exist_ok=True)
        test_file = os.path.join(settings.storage_dir, "test_write.tmp")
        with open(test_file, "w") as f:
            f.write("test")
        os.remove(test_file)
    except OSError as e:
        storage_status = f"error: {str(e)}"

    return {
        "status": "ok",
        "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "storage": {
            "directory": settings.storage_dir,
            "status": storage_status
        },
        "model": {
            "provider": settings.vto_provider,
            "model": settings.replicate_model,
            "token_configured": bool(settings.replicate_api_token)
        }
    }


# Routers under versioned prefix
app.include_router(tryon_router, prefix="/v1")
app.include_router(photos_router, prefix="/v1")
app.include_router(results_router, prefix="/v1")

# Validate configuration at import time (warnings by default; set STRICT_CONFIG=1 to enforce)
_validate_config()
