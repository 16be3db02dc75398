import logging
from collections.abc import Awaitable, Callable

from fastapi import Request, status
from fastapi.responses import JSONResponse, Response
from sqlalchemy.exc import DBAPIError, IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


def _envelope(request: Request, status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {"code": code, "message": message},
            "request_id": getattr(request.state, "request_id", None),
        },
    )


async def error_envelope_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Wrap every failure in the ``{"error": {...}, "request_id": ...}`` envelope.

    Storage errors reach this point untranslated: the session dependency has
    already rolled the transaction back, so the client may retry the whole call.
    """
    try:
        return await call_next(request)
    except StarletteHTTPException as exc:
        detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
        code = exc.detail if isinstance(exc.detail, str) else "http_error"
        return _envelope(request, exc.status_code, code, detail)
    except IntegrityError:
        logger.warning(
            "Constraint violation on %s %s (request %s)",
            request.method,
            request.url.path,
            getattr(request.state, "request_id", None),
        )
        return _envelope(
            request,
            status.HTTP_409_CONFLICT,
            "conflict",
            "The change conflicts with the current state of the post. Reload and retry.",
        )
    except DBAPIError:
        logger.exception("Database error")
        return _envelope(
            request,
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "database_error",
            "The database rejected the operation. Retry the request.",
        )
    except Exception:
        logger.exception("Unhandled exception")
        return _envelope(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "internal_error",
            "An unexpected error occurred",
        )
