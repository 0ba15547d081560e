import traceback
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from storefront.config import Settings
from storefront.context import AppContext
from storefront.database import Base
from storefront.errors import ApiError, PaymentRejected
from storefront.logs import configure_logging
from storefront.routes import router
import storefront.models  # noqa: F401

logger = structlog.get_logger(component="app")


def _error_body(message: str, code: str | None = None, **extra) -> dict:
    body = {"success": False, "message": message}
    if code:
        body["error"] = code
    body.update(extra)
    return body


def register_error_handlers(app: FastAPI):
    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        if isinstance(exc, PaymentRejected):
            logger.info("request_rejected", path=request.url.path, reason=exc.reason.value)
        return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message, exc.code))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"field": ".".join(str(p) for p in err["loc"][1:]), "message": err["msg"]}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content=_error_body("Validation failed", "validation_error", errors=errors),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        if exc.status_code == 404 and exc.detail == "Not Found":
            message = f"Route {request.url.path} not found"
        return JSONResponse(status_code=exc.status_code, content=_error_body(message))

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("unhandled_error", path=request.url.path, method=request.method)
        extra = {}
        if request.app.state.context.settings.is_development:
            extra = {"error": str(exc), "stack": traceback.format_exception(exc)}
        return JSONResponse(status_code=500, content=_error_body("Something went wrong", **extra))


def create_app(context: AppContext | None = None) -> FastAPI:
    """Build the API. Without a context one is assembled from the environment at startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = app.state.context is None
        if owned:
            settings = Settings.from_env()
            configure_logging(settings.env, settings.log_level)
            app.state.context = AppContext.from_settings(settings)
        ctx = app.state.context
        if ctx.engine is not None:
            Base.metadata.create_all(bind=ctx.engine)
        logger.info("startup", env=ctx.settings.env)
        yield
        if owned:
            ctx.close()

    app = FastAPI(title="Storefront Orders", lifespan=lifespan)
    app.state.context = context

    register_error_handlers(app)
    app.include_router(router)

    @app.get("/health")
    def health():
        return {
            "success": True,
            "message": "Storefront API is running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.get("/api/payment-key")
    def payment_key(request: Request):
        return {"success": True, "key": request.app.state.context.settings.stripe_publishable_key}

    return app


app = create_app()
