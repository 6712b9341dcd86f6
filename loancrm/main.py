from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.gzip import GZipMiddleware
from starlette.requests import Request
from starlette.responses import Response
from contextlib import asynccontextmanager
from typing import Optional
import logging
import traceback

from loancrm.api.admin_routes import router as admin_router
from loancrm.api.customer_routes import router as customer_router
from loancrm.api.realtime_routes import router as realtime_router
from loancrm.core.config import Settings, mask_secret
from loancrm.core.errors import ServiceError
from loancrm.database.connection import close_db, init_db
from loancrm.database.stores import AdminStore, CustomerStore
from loancrm.services.admin_service import AdminService
from loancrm.services.customer_service import CustomerService
from loancrm.services.notification_service import NotificationService
from loancrm.services.realtime import RealtimeHub
from loancrm.services.stats_service import StatsService
from loancrm.workers.notification_worker import NotificationWorker

logger = logging.getLogger("server_exception_handler")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Adds security headers to every non-OPTIONS API response.

    OPTIONS requests are left to CORSMiddleware so preflight responses keep
    their Access-Control-* headers.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)

        if request.method != "OPTIONS":
            response.headers["X-Content-Type-Options"] = "nosniff"
            response.headers["X-Frame-Options"] = "DENY"
            response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
            response.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"

        return response


def _error_body(message: str, error: Optional[object] = None) -> dict:
    body = {"message": message}
    if error is not None:
        body["error"] = error
    return body


def register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        if exc.status_code >= 500:
            logger.error("%s on %s %s: %s (%s)", type(exc).__name__, request.method, request.url.path, exc.message, exc.error)
        else:
            logger.warning("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message, exc.error))

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        logger.warning("HTTPException handled: %s", exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(str(exc.detail) if exc.detail else "HTTP error"),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        # Validation errors from FastAPI/Pydantic are bad input (400)
        details = [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
            for err in exc.errors()
        ]
        logger.warning("Validation error: %s", details)
        return JSONResponse(status_code=400, content=_error_body("Request validation failed", details))

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        tb = traceback.format_exc()
        logger.error("Unhandled exception: %s\n%s", exc, tb)
        return JSONResponse(status_code=500, content=_error_body("Server error", str(exc)))


def create_app(
    settings: Optional[Settings] = None,
    *,
    customer_store=None,
    admin_store=None,
    notifier=None,
) -> FastAPI:
    """Build the application.

    Stores default to the MongoDB-backed ones, in which case the lifespan
    connects to MongoDB; injected stores skip the connection.
    """
    settings = settings or Settings.from_env()
    logging.basicConfig(level=settings.LOG_LEVEL.upper())
    connect_db = customer_store is None and admin_store is None

    customer_store = customer_store or CustomerStore()
    admin_store = admin_store or AdminStore()
    notifier = notifier or NotificationService(settings)
    hub = RealtimeHub()
    worker = NotificationWorker(notifier, hub, maxsize=settings.NOTIFICATION_QUEUE_SIZE)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = await init_db(settings) if connect_db else None
        worker.start()
        try:
            yield
        finally:
            await worker.stop()
            close_db(client)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Loan customer records, statistics and admin accounts",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.realtime_hub = hub
    app.state.notification_worker = worker
    app.state.customer_service = CustomerService(customer_store, notification_worker=worker)
    app.state.stats_service = StatsService(customer_store)
    app.state.admin_service = AdminService(admin_store, settings, notifier=notifier)

    register_exception_handlers(app)

    if not settings.JWT_SECRET_KEY:
        logger.warning("JWT_SECRET_KEY is missing or empty; admin login is disabled")
    else:
        logger.debug("Loaded JWT_SECRET_KEY: %s", mask_secret(settings.JWT_SECRET_KEY))

    allowed_origins = settings.allowed_origins or ["*"]
    logger.info("CORS allowed origins: %s", allowed_origins)

    # Middleware runs LIFO: CORS is added last so it sees preflights first
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials="*" not in allowed_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Accept", "Origin", "X-Requested-With"],
        max_age=3600,
    )

    app.include_router(customer_router)
    app.include_router(admin_router)
    app.include_router(realtime_router)

    @app.get("/")
    async def root():
        return {"message": "Server running"}

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "message": "API is running"}

    return app
