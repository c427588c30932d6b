import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from bandsheets.exceptions import (
    AppError,
    ConflictError,
    ForbiddenError,
    ImportInputError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)

logger = structlog.get_logger()

STATUS_BY_ERROR: dict[type[AppError], int] = {
    NotFoundError: 404,
    ValidationError: 422,
    ConflictError: 409,
    UnauthorizedError: 401,
    ForbiddenError: 403,
}


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    status_code = STATUS_BY_ERROR.get(type(exc), 500)
    if status_code == 500:
        logger.error("app_error", path=request.url.path, code=exc.code, message=exc.message)

    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.code, "message": exc.message},
        headers=headers,
    )


async def import_input_handler(request: Request, exc: ImportInputError) -> JSONResponse:
    # Import clients read `success`/`error`, not the error code envelope
    logger.info("import_rejected", path=request.url.path, reason=exc.message)
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": exc.message},
    )


def register_exception_handlers(app: FastAPI) -> None:
    for error_type in STATUS_BY_ERROR:
        app.add_exception_handler(error_type, app_error_handler)
    app.add_exception_handler(ImportInputError, import_input_handler)
    app.add_exception_handler(AppError, app_error_handler)
