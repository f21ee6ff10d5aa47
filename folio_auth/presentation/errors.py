import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from folio_auth.domain.errors import (
    BadRequest,
    Conflict,
    DomainError,
    Forbidden,
    NotFound,
    Unauthenticated,
)
from folio_auth.schemas.responses import Envelope

logger = logging.getLogger(__name__)

# most specific first
_KIND_TO_STATUS: tuple[tuple[type[DomainError], int], ...] = (
    (Unauthenticated, status.HTTP_401_UNAUTHORIZED),
    (Forbidden, status.HTTP_403_FORBIDDEN),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (Conflict, status.HTTP_409_CONFLICT),
    (BadRequest, status.HTTP_400_BAD_REQUEST),
)


def status_for(exc: DomainError) -> int:
    for kind, code in _KIND_TO_STATUS:
        if isinstance(exc, kind):
            return code
    return status.HTTP_400_BAD_REQUEST


def _error_response(
    status_code: int,
    message: str,
    *,
    data: dict | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    envelope = Envelope(
        status="error" if status_code >= 500 else "fail",
        message=message,
        data=data,
    )
    return JSONResponse(
        status_code=status_code,
        content=envelope.model_dump(exclude_none=True),
        headers=headers,
    )


def _validation_errors(exc: RequestValidationError) -> dict[str, str]:
    errors: dict[str, str] = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(loc) or "body"
        errors.setdefault(field, err.get("msg", "invalid value"))
    return errors


def register_exception_handlers(app: FastAPI) -> None:
    """Render every failure as a ``{status, message}`` envelope."""

    @app.exception_handler(DomainError)
    async def handle_domain_error(request: Request, exc: DomainError):
        code = status_for(exc)
        logger.warning(
            "request rejected",
            extra={
                "path": request.url.path,
                "method": request.method,
                "status_code": code,
                "error": type(exc).__name__,
            },
        )
        headers = (
            {"WWW-Authenticate": "Bearer"}
            if code == status.HTTP_401_UNAUTHORIZED
            else None
        )
        return _error_response(code, exc.message, headers=headers)

    @app.exception_handler(HTTPException)
    async def handle_http_exception(request: Request, exc: HTTPException):
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return _error_response(
            exc.status_code, message, headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        errors = _validation_errors(exc)
        logger.info(
            "request validation failed",
            extra={"path": request.url.path, "fields": sorted(errors)},
        )
        return _error_response(
            status.HTTP_400_BAD_REQUEST, "Validation failed", data={"errors": errors}
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.error(
            "unhandled error",
            extra={"path": request.url.path, "method": request.method},
            exc_info=exc,
        )
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error"
        )
