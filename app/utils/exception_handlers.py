from typing import cast

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger

from app.core.exceptions import OAuthFlowError, StateNotFoundError
from app.schemas.auth import ErrorResponse
from app.schemas.common import APIResponse


def oauth_flow_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    exc = cast(OAuthFlowError, exc)
    logger.warning(
        f"{request.method} {request.url.path} failed: {type(exc).__name__}: {exc.message}"
        + (f" ({exc.details})" if exc.details else "")
    )

    body = ErrorResponse(error=exc.message, details=exc.details)
    if isinstance(exc, StateNotFoundError):
        body.recent_states = exc.context.get("recent_states")
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


def http_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    exc = cast(HTTPException, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content=APIResponse(status="error", message=exc.detail).model_dump(),
    )


def validation_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    exc = cast(RequestValidationError, exc)
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=APIResponse(
            status="error",
            message="Validation error",
            data=[
                {"loc": err["loc"], "msg": err["msg"], "type": err["type"]} for err in exc.errors()
            ],
        ).model_dump(),
    )


def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.opt(exception=exc).error(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=APIResponse(status="error", message=str(exc)).model_dump(),
    )
