"""Per-reader routes: bookmarks and reading progress."""
from fastapi import APIRouter

from app.routers.deps import CurrentUser, StoreDep
from app.schemas.common import MessageSchema
from app.schemas.library import (
    BookmarkCreateSchema,
    BookmarkRecord,
    BookmarkStatusSchema,
    ReadingProgressRecord,
    ReadingProgressUpsertSchema,
)

router = APIRouter(prefix="/api", tags=["library"])


@router.get("/bookmarks", response_model=list[BookmarkRecord])
def list_bookmarks(store: StoreDep, user: CurrentUser):
    return store.list_bookmarks(user.id)


@router.post("/bookmarks", response_model=BookmarkRecord)
def create_bookmark(body: BookmarkCreateSchema, store: StoreDep, user: CurrentUser):
    return store.create_bookmark(user.id, body.book_id)


@router.get("/bookmarks/{book_id}", response_model=BookmarkStatusSchema)
def bookmark_status(book_id: str, store: StoreDep, user: CurrentUser):
    return BookmarkStatusSchema(bookmarked=store.is_bookmarked(user.id, book_id))


@router.delete("/bookmarks/{book_id}", response_model=MessageSchema)
def delete_bookmark(book_id: str, store: StoreDep, user: CurrentUser):
    store.delete_bookmark(user.id, book_id)
    return MessageSchema(message="Bookmark removed")


@router.get("/reading-progress/{book_id}", response_model=ReadingProgressRecord | None)
def get_reading_progress(book_id: str, store: StoreDep, user: CurrentUser):
    return store.get_reading_progress(user.id, book_id)


@router.post("/reading-progress", response_model=ReadingProgressRecord)
def upsert_reading_progress(body: ReadingProgressUpsertSchema, store: StoreDep, user: CurrentUser):
    return store.upsert_reading_progress(user.id, body.book_id, body.last_page, body.total_pages)
