import logging

from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_404_NOT_FOUND,
    HTTP_405_METHOD_NOT_ALLOWED,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from paidmada.core.exceptions.PaymentException import PaymentError

logger = logging.getLogger(__name__)

HTTP_ERROR_CODES = {
    HTTP_401_UNAUTHORIZED: "UNAUTHORIZED",
    HTTP_404_NOT_FOUND: "NOT_FOUND",
    HTTP_405_METHOD_NOT_ALLOWED: "METHOD_NOT_ALLOWED",
}


def error_response(status_code: int, code: str, message: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": {"code": code, "message": message, **extra}},
    )


async def payment_exception_handler(request: Request, exc: PaymentError) -> JSONResponse:
    logger.error(f"[API] {request.method} {request.url.path} failed: {exc.code} {exc.message}")
    return JSONResponse(
        status_code=HTTP_400_BAD_REQUEST,
        content={"success": False, "error": exc.to_dict()},
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Validation errors flattened to field / message / type entries"""
    errors = []
    for error in exc.errors():
        # Drop the "body" / "path" location prefix
        location = error["loc"][1:] if len(error["loc"]) > 1 else error["loc"]
        field = " -> ".join(str(loc) for loc in location)
        message = error["msg"]
        error_type = error.get("type", "validation_error")

        if error_type == "missing":
            message = f"Field '{field}' is required"

        errors.append({
            "field": field,
            "message": message,
            "type": error_type
        })

    return error_response(HTTP_400_BAD_REQUEST, "VALIDATION_ERROR", "Invalid data", details=errors)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        message = "Endpoint not found"
    else:
        message = str(exc.detail)
    code = HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
    return error_response(exc.status_code, code, message)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"[API] Unhandled error on {request.method} {request.url.path}")
    return error_response(HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR", "An internal error occurred")
