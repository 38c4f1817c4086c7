import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from reservily.core import config

logger = logging.getLogger(__name__)

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and database credentials.'


def format_validation_error(error: dict) -> str:
    location = '.'.join(str(part) for part in error.get('loc', ()) if part not in ('body', 'query', 'path'))
    message = error.get('msg', 'Invalid value')
    return f'{location}: {message}' if location else message


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        detail = exc.detail
        if exc.status_code == status.HTTP_404_NOT_FOUND and detail == 'Not Found':
            detail = f'Route not found: {request.url.path}'
        return JSONResponse(
            status_code=exc.status_code,
            content={'detail': detail},
            headers=getattr(exc, 'headers', None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = [format_validation_error(error) for error in exc.errors()]
        logger.info('Validation failed for %s: %s', request.url.path, errors)
        return JSONResponse(
            status_code=422,
            content={'detail': 'Validation failed', 'errors': errors},
        )

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
        logger.warning('Integrity error on %s: %s', request.url.path, exc.orig)
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={'detail': 'A record with these details already exists.'},
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.exception('Database error on %s', request.url.path)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={'detail': DATABASE_UNAVAILABLE_DETAIL},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception('Unhandled error on %s', request.url.path)
        content = {'detail': 'Internal Server Error'}
        if config.DEBUG:
            content['error'] = repr(exc)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)
