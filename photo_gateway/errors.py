import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .exceptions import GatewayError
from .schemas import ErrorResponse

UPLOAD_FIELD = "photo"


def _error_response(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(),
        headers=headers,
    )


async def handle_gateway_errors(request: Request, exc: GatewayError) -> JSONResponse:
    """Render a gateway error as `{success: false, error}` with its status code."""
    return _error_response(exc.status_code, str(exc))


async def handle_request_validation_errors(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Render FastAPI's request validation failures as a 400 error body.
    A `photo` field that is not a file is reported the same way as a missing one.
    """
    errors = exc.errors()
    if any(UPLOAD_FIELD in error.get("loc", ()) for error in errors):
        message = "No file uploaded"
    else:
        message = "; ".join(
            f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
            for error in errors
        ) or "Invalid request"
    logging.warning(f"Rejected {request.method} {request.url.path}: {message}")
    return _error_response(status.HTTP_400_BAD_REQUEST, message)


async def handle_http_exceptions(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Keep the status code of framework HTTP errors but use the JSON error contract."""
    return _error_response(exc.status_code, str(exc.detail), headers=exc.headers)


async def handle_broad_exceptions(request: Request, call_next):
    """Catch anything unexpected and still answer with the JSON error contract."""
    try:
        return await call_next(request)
    except Exception as e:
        logging.error(f"Unhandled error on {request.method} {request.url.path}: {e}", exc_info=True)
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            str(e) or "Internal server error",
        )
