from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from marketplace.common import logger
from marketplace.common.utils import error_response


async def fallback_handler(request: Request, exc: Exception):
    # exc_info only , never the request body
    logger.error("unexpected.exception", extra={"path": request.url.path, "http_method": request.method},
                 exc_info=exc)
    return error_response("SERVER_ERROR", {"message": "Internal Server Error"},
                          status.HTTP_500_INTERNAL_SERVER_ERROR)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # raw input may carry account numbers , keep location and message
    errors = [{"loc": [str(p) for p in e.get("loc", ())], "msg": e.get("msg")} for e in exc.errors()]
    logger.warning("request.validation_failed", extra={"errors": errors, "path": request.url.path})
    return error_response("UNPROCESSABLE_ENTITY", {"message": "invalid request", "errors": errors},
                          status.HTTP_422_UNPROCESSABLE_ENTITY)


async def http_exception_handler(request: Request, exc: HTTPException):
    details = {"message": exc.detail}
    field_errors = getattr(exc, "errors", None)
    if field_errors:
        details["errors"] = field_errors

    if exc.status_code >= 500:
        logger.error("http.exception", extra={"path": request.url.path, "status_code": exc.status_code})

    code = getattr(exc, "code", None) or f"HTTP_{exc.status_code}"
    return error_response(code, details, exc.status_code, headers=getattr(exc, "headers", None))


def register_all_exceptions(app: FastAPI):
    app.add_exception_handler(Exception, fallback_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
