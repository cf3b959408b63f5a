# valet_app/main.py
"""
FastAPI application entry point.
Includes CORS, request timing, error mapping for the service error taxonomy, and all routers.
"""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from valet_app.routers import auth, vehicles, sessions, health
from valet_app.database import create_tables
from valet_app.config import settings
from valet_app.errors import ValetError, InvalidArgument
from valet_app.services import notifier
from valet_app.utils.logger import get_logger
import time

logger = get_logger(__name__)

app = FastAPI(
    title="Valet Parking API",
    description="Valet check-in, pickup requests and OTP-verified delivery.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS (mobile / web clients) ─────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Request Timing Middleware ────────────────────────────────────────────────
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    duration = round((time.time() - start) * 1000, 2)
    logger.debug(f"{request.method} {request.url.path} → {response.status_code} ({duration}ms)")
    return response


# ── Error Handlers ───────────────────────────────────────────────────────────
@app.exception_handler(ValetError)
async def valet_error_handler(request: Request, exc: ValetError):
    if exc.status_code >= 500:
        logger.error(f"{exc.kind} on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.kind},
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"{field}: {first.get('msg', 'invalid value')}" if field else "Invalid request"
    return JSONResponse(
        status_code=InvalidArgument.status_code,
        content={"detail": message, "error": InvalidArgument.kind},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# ── Routers ──────────────────────────────────────────────────────────────────
app.include_router(auth.router,     prefix="/api/v1", tags=["🔑 Auth"])
app.include_router(vehicles.router, prefix="/api/v1", tags=["🚗 Vehicles"])
app.include_router(sessions.router, prefix="/api/v1", tags=["🅿️  Sessions"])
app.include_router(health.router,   prefix="/api/v1", tags=["💚 Health"])


# ── Startup ───────────────────────────────────────────────────────────────────
@app.on_event("startup")
async def startup():
    logger.info("🚀 Valet Parking backend starting up...")
    create_tables()
    logger.info("✅ Database tables ready")
    if not notifier.is_configured():
        logger.warning("📵 No SMS gateway configured — OTPs are only logged")
    if settings.EXPOSE_OTP_IN_RESPONSE:
        logger.warning("⚠️  EXPOSE_OTP_IN_RESPONSE is on — disable it in production")
    logger.info(f"🌐 Listening on http://{settings.BACKEND_IP}:{settings.BACKEND_PORT}")
    logger.info("📖 API docs at /docs")


@app.on_event("shutdown")
async def shutdown():
    logger.info("🛑 Valet Parking backend shutting down...")
