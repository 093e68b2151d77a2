"""
LabelSync - FastAPI Backend
"""
import asyncio
import os
from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi import status
from sqlalchemy import text
import uvicorn
import logging

from routes.api import register_routes
from labelsync.database import engine, Base
from labelsync.config import settings
from labelsync.workers.shipping_info_worker import run_shipping_info_worker

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Create database tables (alembic owns migrations in deployed environments)
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="LabelSync API",
    description="Marketplace order aggregation and label hand-off",
    version="1.0.0",
    docs_url="/docs" if settings.IS_DEVELOPMENT else None,
    redoc_url="/redoc" if settings.IS_DEVELOPMENT else None,
)

logger.info("Starting LabelSync API")
logger.info("Environment: %s (production=%s, cloud=%s)", settings.ENV, settings.IS_PRODUCTION, settings.IS_CLOUD)
logger.info("Host: %s:%s", settings.HOST, settings.PORT)

# Startup config validation (warn only)
if settings.IS_PRODUCTION and settings.JWT_SECRET.strip() in ("", "supersecret_fallback_key_change_in_production"):
    logger.warning("JWT_SECRET is default or empty in production. Set a strong JWT_SECRET in environment.")
if settings.IS_PRODUCTION and settings.ENCRYPTION_KEY == "your-32-character-encryption-key!!":
    logger.warning("ENCRYPTION_KEY is the default in production. Stored credentials are not protected.")
if settings.IS_PRODUCTION and not (os.getenv("ALLOWED_ORIGINS", "") or "").strip():
    logger.warning("ALLOWED_ORIGINS is not set in production. Set your frontend origin(s) (comma-separated).")

def get_cors_headers(request: Request) -> dict:
    """Get CORS headers for a request"""
    origin = request.headers.get("origin", "")
    allowed_origins = settings.ALLOWED_ORIGINS

    if origin in allowed_origins:
        cors_origin = origin
    elif settings.IS_DEVELOPMENT and (origin.startswith("http://localhost") or origin.startswith("http://127.0.0.1")):
        cors_origin = origin
    elif allowed_origins:
        cors_origin = allowed_origins[0]
    else:
        cors_origin = "*"

    return {
        "Access-Control-Allow-Origin": cors_origin,
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
        "Access-Control-Allow-Headers": "*",
    }

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning("Validation error: %s", exc.errors())
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": jsonable_errors(exc),
            "message": "Validation error: Please check your request format"
        },
        headers=get_cors_headers(request)
    )

def jsonable_errors(exc: RequestValidationError) -> list:
    return [{"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")} for err in exc.errors()]

@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTPException and ensure CORS headers are sent"""
    headers = get_cors_headers(request)
    if exc.headers:
        headers.update(exc.headers)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=headers
    )

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler to ensure CORS headers are always sent"""
    logger.error("Unhandled exception: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error",
            "message": str(exc) if settings.IS_DEVELOPMENT else "An error occurred"
        },
        headers=get_cors_headers(request)
    )

cors_kwargs = {
    "allow_origins": settings.ALLOWED_ORIGINS,
    "allow_credentials": True,
    "allow_methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    "allow_headers": ["*"],
}
cors_regex = settings.CORS_ORIGIN_REGEX
if cors_regex:
    cors_kwargs["allow_origin_regex"] = cors_regex

app.add_middleware(CORSMiddleware, **cors_kwargs)
logger.info("CORS configured for %s origin(s)", len(settings.ALLOWED_ORIGINS))

register_routes(app, settings)

@app.get("/health")
async def health():
    """Health check endpoint. Includes DB connectivity check."""
    db_status = "ok"
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning("Health check DB ping failed: %s", e)
        db_status = "error"
    return {
        "status": "ok" if db_status == "ok" else "degraded",
        "service": "api",
        "db": db_status,
        "environment": settings.ENV,
        "production": settings.IS_PRODUCTION,
    }


# --- Shipping-info sweep: all users, every SHIPPING_INFO_INTERVAL_SEC ---
async def _shipping_info_loop() -> None:
    """Background: refresh OrderShipping rows for already-synced orders. Never creates orders."""
    await asyncio.sleep(settings.SHIPPING_INFO_FIRST_DELAY_SEC)
    logger.info("Shipping info sweep started (interval=%ss)", settings.SHIPPING_INFO_INTERVAL_SEC)
    while True:
        try:
            result = await run_shipping_info_worker()
            if result.get("created") or result.get("updated") or result.get("errors"):
                logger.info(
                    "Shipping info sweep: created=%s updated=%s errors=%s",
                    result.get("created", 0), result.get("updated", 0), len(result.get("errors", {})),
                )
        except Exception as e:
            logger.exception("Shipping info sweep failed: %s", e)
        await asyncio.sleep(settings.SHIPPING_INFO_INTERVAL_SEC)


@app.on_event("startup")
async def startup_shipping_info_sweep() -> None:
    if not settings.SHIPPING_INFO_ENABLED:
        logger.info("Shipping info sweep disabled (SHIPPING_INFO_ENABLED=false)")
        return
    asyncio.create_task(_shipping_info_loop())


@app.get("/api")
async def root():
    """API root endpoint"""
    return {
        "message": "Welcome to LabelSync API",
        "version": "1.0.0",
        "environment": settings.ENV,
        "docs": "/docs" if settings.IS_DEVELOPMENT else "disabled in production"
    }

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.IS_DEVELOPMENT,
        log_level=settings.LOG_LEVEL.lower()
    )
