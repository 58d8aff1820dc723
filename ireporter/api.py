"""
iReporter API
=============

FastAPI application for citizen reports.

Endpoints (all under /api/v1):
- /auth/*           - signup, login, profile, users (admin)
- /red-flags/*      - corruption reports
- /interventions/*  - infrastructure reports
- /notifications/*  - status-change notifications
- GET /health       - Health check
- /uploads/*        - Stored media

Run with:
    uvicorn ireporter.api:app --host 0.0.0.0 --port 3000
"""

import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api_auth import router as auth_router
from .api_notifications import router as notifications_router
from .api_reports import red_flags_router, interventions_router
from .config import get_settings
from .db.session import init_db
from .errors import ReportError
from .schemas import failure, success

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)

settings = get_settings()

app = FastAPI(
    title="iReporter",
    description="Red-flag and intervention reporting with admin triage",
    version=settings.service_version,
    docs_url="/docs",
    redoc_url="/redoc",
)

CORS_ALLOW_ORIGINS = settings.cors_origins()
logger.info(f"CORS allow origins: {CORS_ALLOW_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["*"],
)

# Stored media
UPLOAD_DIR = Path(settings.upload_dir)
UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=str(UPLOAD_DIR)), name="uploads")

API_PREFIX = "/api/v1"
app.include_router(auth_router, prefix=API_PREFIX)
app.include_router(red_flags_router, prefix=API_PREFIX)
app.include_router(interventions_router, prefix=API_PREFIX)
app.include_router(notifications_router, prefix=API_PREFIX)


@app.get("/health")
def health():
    return success(200, {"message": "iReporter API is running successfully", "version": settings.service_version})


# =============================================================================
# Startup
# =============================================================================

@app.on_event("startup")
def startup_event():
    """Initialize on startup"""
    logger.info(f"Starting iReporter v{settings.service_version}")
    init_db()
    if not settings.redis_url:
        logger.info("REDIS_URL not set: notifications are delivered inline")
    if not settings.email_configured():
        logger.info("SMTP not configured: status emails are logged only")


# =============================================================================
# Error envelope
# =============================================================================

@app.exception_handler(ReportError)
async def report_error_handler(request: Request, exc: ReportError):
    return JSONResponse(status_code=exc.status_code, content=failure(exc.status_code, exc.message))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404 and exc.detail == "Not Found":
        message = "Route not found"
    else:
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(status_code=exc.status_code, content=failure(exc.status_code, message))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Return validation errors as 400 without echoing inputs"""
    problems = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        problems.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return JSONResponse(status_code=400, content=failure(400, "; ".join(problems) or "Invalid request"))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler - always return valid JSON"""
    logger.exception("Unhandled exception on %s", request.url.path)
    return JSONResponse(status_code=500, content=failure(500, "Something went wrong!"))


# =============================================================================
# Main (for direct execution)
# =============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "ireporter.api:app",
        host="0.0.0.0",
        port=3000,
        reload=True
    )
