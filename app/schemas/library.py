"""Pydantic schemas for bookmarks, reading progress, downloads and stats."""
from datetime import datetime

from pydantic import Field

from app.schemas.common import CamelModel, RecordModel


class BookmarkRecord(RecordModel):
    id: str
    user_id: str
    book_id: str
    created_at: datetime


class BookmarkCreateSchema(CamelModel):
    book_id: str


class BookmarkStatusSchema(CamelModel):
    bookmarked: bool


class ReadingProgressRecord(RecordModel):
    id: str
    user_id: str
    book_id: str
    last_page: int = 0
    total_pages: int | None = None
    updated_at: datetime


class ReadingProgressUpsertSchema(CamelModel):
    book_id: str
    last_page: int = Field(default=0, ge=0)
    total_pages: int | None = Field(default=None, ge=0)


class DownloadEventRecord(RecordModel):
    id: str
    book_id: str
    user_id: str | None = None
    downloaded_at: datetime


class LibraryStatsSchema(CamelModel):
    books: int
    users: int
    downloads: int
    reviews: int
