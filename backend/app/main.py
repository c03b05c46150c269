"""
Marketing HR API v1.0
FastAPI backend for the ops dashboard: payroll/incentives, KPI tracking,
leave management, monthly financials and AI workforce analysis.
"""
import os
import logging
import time
from contextlib import asynccontextmanager
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse

# .env must be loaded before app.config reads the environment
load_dotenv()

from app.config import AI_PRIMARY_MODEL, ai_api_key
from app.services.errors import InvalidStateError, NotFoundError
from app.services.logging_config import setup_logging
from app.services.middleware import (
    RateLimitMiddleware,
    RequestTimingMiddleware,
    SecurityHeadersMiddleware,
)

setup_logging(
    level=os.getenv("LOG_LEVEL", "INFO"),
    json_output=os.getenv("LOG_FORMAT", "json").lower() != "text",
)
logger = logging.getLogger("hr-api")

_STARTED_AT = time.monotonic()

for var in ("DATABASE_URL", "JWT_SECRET_KEY"):
    if not os.getenv(var):
        logger.warning(f"MISSING env var: {var} — running in dev mode")
if not ai_api_key():
    logger.info("GEMINI_API_KEY not set — workforce analysis is rule-based only")


@asynccontextmanager
async def lifespan(app: FastAPI):
    from app.db import engine, init_db
    await init_db()
    yield
    await engine.dispose()


app = FastAPI(
    title="Marketing HR API",
    version="1.0.0",
    description="Payroll, KPI, leave and workforce analytics for the marketing ops dashboard",
    lifespan=lifespan,
)

cors_origins = [
    o.strip()
    for o in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")
    if o.strip()
]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept", "X-Request-ID"],
)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RateLimitMiddleware)
# Added last so it is outermost and times everything else
app.add_middleware(RequestTimingMiddleware)


# ---------------------------------------------------------------------------
# Domain errors → HTTP
# ---------------------------------------------------------------------------
@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(InvalidStateError)
async def invalid_state_handler(request: Request, exc: InvalidStateError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


# Routers
from app.api.payroll_routes import router as payroll_router
from app.api.kpi_routes import router as kpi_router
from app.api.leave_routes import router as leave_router
from app.api.financials_routes import router as financials_router
from app.api.analysis_routes import router as analysis_router

for router in (payroll_router, kpi_router, leave_router, financials_router, analysis_router):
    app.include_router(router)


@app.get("/health")
async def health_check():
    return {
        "status": "active",
        "version": app.version,
        "db_configured": bool(os.getenv("DATABASE_URL")),
        "ai_enabled": bool(ai_api_key()),
        "ai_primary_model": AI_PRIMARY_MODEL,
        "uptime_seconds": round(time.monotonic() - _STARTED_AT, 1),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True)
