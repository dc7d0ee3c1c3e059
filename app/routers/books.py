"""Public catalog routes: books, reviews, downloads, categories, stats."""
import logging
from typing import Annotated

from fastapi import APIRouter, Query
from fastapi.responses import FileResponse

from app.core.errors import NotFoundError
from app.routers.deps import CurrentUser, FilesDep, OptionalUser, StoreDep
from app.schemas.catalog import BookFilter, BookWithDetails, CategoryRecord, SortOrder
from app.schemas.library import LibraryStatsSchema
from app.schemas.review import ReviewCreateSchema, ReviewRecord, ReviewWithUser
from app.services import catalog

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["catalog"])


@router.get("/stats", response_model=LibraryStatsSchema)
def get_stats(store: StoreDep):
    return catalog.library_stats(store)


@router.get("/books", response_model=list[BookWithDetails])
def list_books(
    store: StoreDep,
    search: str | None = None,
    category_id: Annotated[str | None, Query(alias="categoryId")] = None,
    sort: SortOrder = "latest",
    limit: Annotated[int | None, Query(ge=1)] = None,
):
    """Catalog with averageRating/reviewCount; search matches title or author."""
    query = BookFilter(search=search, category_id=category_id, sort=sort, limit=limit)
    return catalog.list_books(store, query)


@router.get("/books/{book_id}", response_model=BookWithDetails)
def get_book(book_id: str, store: StoreDep):
    return catalog.get_book(store, book_id)


@router.get("/books/{book_id}/reviews", response_model=list[ReviewWithUser])
def list_reviews(book_id: str, store: StoreDep):
    return catalog.list_reviews(store, book_id)


@router.post("/books/{book_id}/reviews", response_model=ReviewRecord)
def create_review(book_id: str, body: ReviewCreateSchema, store: StoreDep, user: CurrentUser):
    return catalog.add_review(store, book_id, user.id, body.rating, body.comment)


@router.get("/books/{book_id}/download")
def download_book(book_id: str, store: StoreDep, files: FilesDep, user: OptionalUser):
    """Stream the book file and log the download (anonymous allowed)."""
    book = store.get_book(book_id)
    if book is None or not book.book_file:
        raise NotFoundError("Book file not found")
    path = files.resolve(book.book_file)
    if path is None:
        logger.warning("File for book %s missing on disk: %s", book.id, book.book_file)
        raise NotFoundError("Book file not found on server")

    store.record_download(book.id, user.id if user else None)
    return FileResponse(path, filename=f"{book.title}.{book.file_type or 'pdf'}")


@router.get("/categories", response_model=list[CategoryRecord])
def list_categories(store: StoreDep):
    return store.list_categories()


@router.get("/categories/{category_id}", response_model=CategoryRecord)
def get_category(category_id: str, store: StoreDep):
    category = store.get_category(category_id)
    if category is None:
        raise NotFoundError("Category not found")
    return category
