"""Digital library - FastAPI app factory.

Run with ``uvicorn app.main:create_app --factory``.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError as PydanticValidationError

from app.core.config import Settings, get_settings
from app.core.errors import LibraryError, UnexpectedError
from app.routers import admin, auth, books, library
from app.services.files import URL_PREFIX, FileStorage
from app.store import Store, build_store

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _validation_message(exc: RequestValidationError | PydanticValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
    return f"{location}: {first.get('msg')}" if location else str(first.get("msg"))


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(LibraryError)
    async def library_error_handler(request: Request, exc: LibraryError):
        if isinstance(exc, UnexpectedError):
            logger.error("Unexpected error on %s %s: %s", request.method, request.url.path, exc.message)
            return JSONResponse(status_code=exc.status_code, content={"message": "Internal server error"})
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"message": _validation_message(exc)})

    @app.exception_handler(PydanticValidationError)
    async def model_validation_handler(request: Request, exc: PydanticValidationError):
        return JSONResponse(status_code=400, content={"message": _validation_message(exc)})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"message": "Internal server error"})


def create_app(settings: Settings | None = None, store: Store | None = None) -> FastAPI:
    """Build the app around an explicitly constructed store."""
    settings = settings or get_settings()
    configure_logging(settings)
    store = store if store is not None else build_store(settings)
    files = FileStorage(settings.upload_dir, settings.max_upload_bytes)
    files.ensure_dirs()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store.init()
        yield
        store.close()

    app = FastAPI(
        title=settings.app_name,
        description="Digital library: catalog, reviews, bookmarks, reading progress",
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store
    app.state.files = files

    register_exception_handlers(app)

    app.mount(URL_PREFIX, StaticFiles(directory=str(settings.upload_dir)), name="uploads")

    app.include_router(auth.router)
    app.include_router(books.router)
    app.include_router(library.router)
    app.include_router(admin.router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app
