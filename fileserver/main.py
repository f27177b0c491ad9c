from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings, settings
from .deps import FileServices, build_services
from .errors import PayloadTooLargeError
from .routers import files, pages
from .services.storage import Storage

logger = logging.getLogger(__name__)

_LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'
_PACKAGE_DIR = Path(__file__).resolve().parent
_GENERIC_API_ERROR = 'Internal server error. Please try again.'
_GENERIC_PAGE_ERROR = 'Unexpected error'
# multipart framing around the file part
_MULTIPART_OVERHEAD = 64 * 1024

_SECURITY_HEADERS = {
    'X-Frame-Options': 'DENY',
    'X-Content-Type-Options': 'nosniff',
    'Referrer-Policy': 'strict-origin-when-cross-origin',
}


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(), format=_LOG_FORMAT)


def _parse_cors_origins(value: str) -> list[str]:
    return [origin.strip() for origin in value.split(',') if origin.strip()]


def _apply_security_headers(response):
    for key, value in _SECURITY_HEADERS.items():
        response.headers[key] = value
    return response


def _is_api(request: Request) -> bool:
    return request.url.path.startswith('/api/')


def _error_response(request: Request, status_code: int, message: str, headers: dict | None = None):
    if _is_api(request):
        response = JSONResponse({'success': False, 'error': message}, status_code=status_code, headers=headers)
    else:
        response = PlainTextResponse(message, status_code=status_code, headers=headers)
    return _apply_security_headers(response)


def _declared_length(request: Request) -> int | None:
    raw = request.headers.get('content-length', '')
    return int(raw) if raw.isdigit() else None


async def security_middleware(request: Request, call_next):
    if request.method == 'POST' and request.url.path == '/api/upload':
        declared = _declared_length(request)
        limit = request.app.state.settings.max_upload_bytes + _MULTIPART_OVERHEAD
        if declared is not None and declared > limit:
            logger.warning('Rejected upload request body of %d bytes before parsing', declared)
            return _error_response(request, PayloadTooLargeError.status_code, PayloadTooLargeError.default_message)

    response = await call_next(request)
    return _apply_security_headers(response)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _error_response(request, exc.status_code, str(exc.detail), getattr(exc, 'headers', None))


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return _error_response(request, 400, 'Invalid request')


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error('Unhandled error on %s %s', request.method, request.url.path, exc_info=exc)
    message = _GENERIC_API_ERROR if _is_api(request) else _GENERIC_PAGE_ERROR
    return _error_response(request, 500, message)


@asynccontextmanager
async def lifespan(app: FastAPI):
    services: FileServices = app.state.services
    try:
        services.resolver.ensure_root()
    except OSError:
        logger.critical('Failed to create storage root %s', services.resolver.root, exc_info=True)
        raise
    logger.info('Storage root: %s', services.resolver.root)
    logger.info('Maximum upload size: %d bytes', app.state.settings.max_upload_bytes)
    yield


def create_app(app_settings: Settings, storage: Storage | None = None) -> FastAPI:
    app = FastAPI(title=app_settings.app_name, lifespan=lifespan)
    app.state.settings = app_settings
    app.state.services = build_services(app_settings, storage)

    cors_origins = _parse_cors_origins(app_settings.cors_origins)
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_methods=['GET', 'POST', 'OPTIONS'],
            allow_headers=['Content-Type'],
        )
    app.middleware('http')(security_middleware)

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.mount('/static', StaticFiles(directory=str(_PACKAGE_DIR / 'static')), name='static')
    app.include_router(pages.router)
    app.include_router(files.router)
    app.include_router(files.download_router)
    return app


app = create_app(settings)


def run() -> None:
    configure_logging(settings.log_level)
    logger.info('Server starting on %s:%d', settings.app_host, settings.app_port)
    uvicorn.run(app, host=settings.app_host, port=settings.app_port, log_level=settings.log_level)
