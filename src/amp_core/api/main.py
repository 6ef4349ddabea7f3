"""Account Management Platform FastAPI application."""
import asyncio
import logging
import os
import signal
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import crud
from ..config import DEFAULT_JWT_SECRET, Settings, get_settings
from ..database import SessionLocal, create_schema, dispose_engine, init_engine
from ..errors import AppError, PersistenceError
from ..realtime import RealtimeHub
from .routers import auth, accounts, tasks, realtime

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("amp-core")

GENERIC_ERROR = "Something went wrong"


def _fatal_async_error(loop: asyncio.AbstractEventLoop, context: dict) -> None:
    """Unhandled task failures leave the process in an unknown state: log and terminate."""
    exc = context.get("exception")
    if exc is None:
        loop.default_exception_handler(context)
        return
    logger.critical(f"UNHANDLED ASYNC ERROR! Shutting down... {context.get('message')}", exc_info=exc)
    os.kill(os.getpid(), signal.SIGTERM)


def _warn_on_insecure_defaults(settings: Settings) -> None:
    if settings.environment == "test":
        return
    if settings.jwt_secret == DEFAULT_JWT_SECRET:
        logger.warning("JWT_SECRET is the built-in default; anyone can forge tokens. Set it before going live.")
    if not settings.encryption_key:
        logger.warning("ENCRYPTION_KEY is empty; credentials are encrypted with an all-zero key.")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    _warn_on_insecure_defaults(settings)
    init_engine(settings)
    if settings.auto_create_schema:
        create_schema()

    if settings.bootstrap_admin_email and settings.bootstrap_admin_password:
        with SessionLocal() as db:
            admin = crud.ensure_admin(db, settings.bootstrap_admin_email, settings.bootstrap_admin_password)
        logger.info(f"Bootstrap admin ready: {admin.email}")

    loop = asyncio.get_running_loop()
    if settings.exit_on_async_error:
        loop.set_exception_handler(_fatal_async_error)
    app.state.hub = RealtimeHub(queue_size=settings.realtime_queue_size, loop=loop)

    logger.info(f"Account Management Platform API started ({settings.environment})")
    try:
        yield
    finally:
        await app.state.hub.close()
        dispose_engine()
        logger.info("Account Management Platform API stopped")


# Create FastAPI app
app = FastAPI(
    title="Account Management Platform API",
    description="Owners submit accounts, admins activate them, managers work them",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info(f"{request.method} {request.url.path}")
    return await call_next(request)


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    message = exc.message
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} - {exc.status_code}: {exc.message}")
        if isinstance(exc, PersistenceError) and not get_settings().is_development:
            message = GENERIC_ERROR
    else:
        logger.warning(f"{request.method} {request.url.path} - {exc.status_code}: {exc.message}")
    return _error_response(exc.status_code, message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    problems = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path"))
        detail = error.get("msg", "Invalid value").removeprefix("Value error, ")
        problems.append(f"{field}: {detail}" if field else detail)
    message = "; ".join(problems) or "Invalid request"
    logger.warning(f"{request.method} {request.url.path} - 400: {message}")
    return _error_response(400, message)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    if exc.status_code == 404 and message == "Not Found":
        message = f"Not found - {request.url.path}"
    return _error_response(exc.status_code, message)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error(f"{request.method} {request.url.path} - unhandled {type(exc).__name__}: {exc}", exc_info=exc)
    message = str(exc) if get_settings().is_development else GENERIC_ERROR
    return _error_response(500, message)


app.include_router(auth.router, prefix="/api/auth")
app.include_router(accounts.router, prefix="/api/accounts")
app.include_router(tasks.router, prefix="/api/tasks")
app.include_router(realtime.router)


@app.get("/")
def root():
    """Root endpoint with server info."""
    return {
        "name": "Account Management Platform API",
        "version": "1.0.0",
        "docs": "/docs",
        "message": "Welcome to Account Management Platform API",
    }


@app.get("/health")
def health_check(request: Request):
    """Health check endpoint."""
    hub = getattr(request.app.state, "hub", None)
    return {
        "status": "healthy",
        "environment": get_settings().environment,
        "realtime_connections": hub.connection_count if hub else 0,
    }


def run() -> None:
    """Console entry point: serve the API with uvicorn."""
    import uvicorn

    uvicorn.run("amp_core.api.main:app", host=settings.host, port=settings.port)
