"""Mapping of engine errors onto HTTP responses."""
import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse

from portfolio_analytics.core.constants import ErrorCode
from portfolio_analytics.core.exceptions import AnalyticsError


logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    ErrorCode.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.INSUFFICIENT_RESOURCE: status.HTTP_409_CONFLICT,
    ErrorCode.PRECONDITION_FAILED: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.INTERNAL_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_code_for(error_code: ErrorCode) -> int:
    return ERROR_STATUS_CODES.get(error_code, status.HTTP_400_BAD_REQUEST)


async def analytics_error_handler(request: Request, exc: AnalyticsError) -> JSONResponse:
    status_code = status_code_for(exc.error_code)
    logger.warning(f"{request.method} {request.url.path} failed ({status_code}): {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "errorCode": exc.error_code.value}
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error", "errorCode": ErrorCode.INTERNAL_ERROR.value}
    )
