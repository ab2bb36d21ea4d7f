from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.dependencies.rate_limits import setup_rate_limiter
from api.router import api_router
from infrastructure.configuration import settings
from infrastructure.logging import (
    bind_request_context,
    get_correlation_id,
    get_module_logger,
)
from modules.notifications.domain.errors import NotificationError
from server.lifespan import lifespan

logger = get_module_logger()

CORRELATION_HEADER = "X-Correlation-ID"


def error_body(message: str, status_code: int) -> dict:
    error = {"message": message, "status_code": status_code}
    correlation_id = get_correlation_id()
    if correlation_id:
        error["correlation_id"] = correlation_id
    return {"success": False, "error": error}


async def notification_error_handler(_request: Request, exc: Exception):
    """Map the notification error taxonomy onto JSON error responses."""
    if not isinstance(exc, NotificationError):
        raise exc
    if exc.status_code >= 500:
        logger.error(
            "request_failed", error=exc.message, error_type=type(exc).__name__
        )
    else:
        logger.info(
            "request_rejected", error=exc.message, error_type=type(exc).__name__
        )
    return JSONResponse(
        status_code=exc.status_code, content=error_body(exc.message, exc.status_code)
    )


async def unhandled_error_handler(_request: Request, exc: Exception):
    logger.error("unhandled_exception", error=str(exc), exc_info=exc)
    return JSONResponse(status_code=500, content=error_body("Internal server error", 500))


async def correlation_middleware(request: Request, call_next):
    with bind_request_context(
        correlation_id=request.headers.get(CORRELATION_HEADER),
        request_path=request.url.path,
        request_method=request.method,
    ) as correlation_id:
        response = await call_next(request)
        response.headers[CORRELATION_HEADER] = correlation_id
        return response


handler = FastAPI(title="Notification Service", lifespan=lifespan)
setup_rate_limiter(handler)

allow_origins = ["*"] if settings.is_production else settings.server.cors_origins
handler.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
handler.middleware("http")(correlation_middleware)
handler.add_exception_handler(NotificationError, notification_error_handler)
handler.add_exception_handler(Exception, unhandled_error_handler)

handler.include_router(api_router)
