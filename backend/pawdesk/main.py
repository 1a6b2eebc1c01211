import logging
import os
import subprocess
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from pawdesk import config
from pawdesk.database import engine, init_db, is_database_configured
from pawdesk.db_schema_patch import (
    backfill_session_titles,
    backfill_template_flags,
    ensure_package_columns,
    ensure_session_columns,
)
from pawdesk.errors import PawdeskError
from pawdesk.routes import audit_log, packages, sessions

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Pawdesk API")


# Get build info
def get_build_info():
    """Get git commit hash or build timestamp"""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            cwd=os.path.dirname(os.path.dirname(__file__)),
            capture_output=True,
            text=True,
            timeout=2,
        )
        if result.returncode == 0:
            return result.stdout.strip()
    except Exception:
        pass

    # Fallback to build timestamp
    return datetime.now().strftime("%Y%m%d-%H%M%S")


BUILD_HASH = get_build_info()

_cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
_cors_origins.extend(config.CORS_ORIGINS)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _format_validation_error(err: dict) -> str:
    msg = str(err.get("msg", "Invalid request"))
    if err.get("type") == "missing" and err.get("loc"):
        return f"{err['loc'][-1]} is required"
    # Custom validators surface as "Value error, <message>"
    return msg.split(", ", 1)[1] if msg.startswith("Value error, ") else msg


@app.exception_handler(PawdeskError)
async def pawdesk_error_handler(request: Request, exc: PawdeskError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    messages = [_format_validation_error(err) for err in exc.errors()]
    return JSONResponse(status_code=400, content={"error": ", ".join(messages) or "Invalid request"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("%s %s failed", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error."})


# Include routers
app.include_router(sessions.router, prefix="/api", tags=["sessions"])
app.include_router(packages.router, prefix="/api", tags=["packages"])
app.include_router(audit_log.router, prefix="/api", tags=["audit-log"])


@app.on_event("startup")
def on_startup():
    if not is_database_configured():
        logger.warning("DATABASE_URL is not set; data endpoints will answer 503")
        return

    init_db()
    ensure_session_columns(engine)
    ensure_package_columns(engine)
    backfill_session_titles(engine)
    backfill_template_flags(engine)

    route_count = sum(1 for r in app.routes if getattr(r, "path", None))
    logger.info("Pawdesk API ready: %d routes, build %s", route_count, BUILD_HASH)


@app.get("/api/health")
def health_check():
    """Diagnostic endpoint to verify which code is running"""
    return {
        "app_name": "Pawdesk API",
        "build_hash": BUILD_HASH,
        "status": "healthy",
        "database": "configured" if is_database_configured() else "not_configured",
    }
