import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import get_settings
from .core.security import create_session_token, verify_session_token
from .db.base import SessionLocal, engine, init_db

# Ensure logs directory exists
logs_dir = Path(__file__).resolve().parent.parent / "logs"
logs_dir.mkdir(exist_ok=True)

# Configure both file and console logging
logging.basicConfig(
    level=logging.DEBUG if get_settings().DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.FileHandler(logs_dir / "palavraviva.log", encoding="utf-8"),
        logging.StreamHandler(),
    ],
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logger.info("Starting %s (%s)", settings.PROJECT_NAME, settings.ENVIRONMENT)
    if not settings.CRON_SECRET:
        logger.warning("CRON_SECRET not set; cron endpoints will refuse requests")
    # Tests manage their own schema
    if settings.ENVIRONMENT != "test":
        init_db()
    try:
        yield
    finally:
        # Ensure DB sessions and engine are properly cleaned up
        try:
            SessionLocal.remove()
        except Exception as e:
            logger.warning("SessionLocal.remove() failed: %s", e)
        try:
            engine.dispose()
        except Exception as e:
            logger.warning("engine.dispose() failed: %s", e)


settings = get_settings()

app = FastAPI(
    title="Palavra Viva API",
    description="Backend API for Palavra Viva - daily devotional, reading plans and prayer pairing",
    version=settings.VERSION,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)


@app.middleware("http")
async def refresh_session(request: Request, call_next):
    """Slide the session expiry forward on every request, and drop dead cookies."""
    response = await call_next(request)

    cookie_name = settings.SESSION_COOKIE_NAME
    token = request.cookies.get(cookie_name)
    if not token:
        return response
    # The endpoint already replaced or cleared the cookie
    if any(
        h.startswith(f"{cookie_name}=".encode())
        for k, h in response.raw_headers
        if k.lower() == b"set-cookie"
    ):
        return response

    payload = verify_session_token(token)
    if payload is None:
        response.delete_cookie(cookie_name)
        return response

    response.set_cookie(
        key=cookie_name,
        value=create_session_token(payload["user"]["id"]),
        max_age=settings.SESSION_EXPIRE_HOURS * 3600,
        httponly=True,
        secure=settings.ENVIRONMENT == "production",
        samesite="lax",
    )
    return response


# Set up CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_origin_regex=settings.CORS_ORIGIN_REGEX or None,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Health check endpoint
@app.get("/api/health")
async def health_check():
    return {
        "status": "healthy",
        "service": "Palavra Viva API",
        "environment": get_settings().ENVIRONMENT,
    }


# Import and include routers
from .api.v1.api import api_router  # noqa: E402

app.include_router(api_router, prefix="/api/v1")


# Root endpoint
@app.get("/")
async def root():
    return {"message": "Welcome to Palavra Viva API", "docs": "/api/docs", "version": settings.VERSION}


# Error handlers
@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request, exc):
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )
