"""Pydantic schemas for categories, books and catalog queries."""
from datetime import datetime
from typing import Any, Literal

from pydantic import Field, field_validator

from app.schemas.common import CamelModel, RecordModel

SortOrder = Literal["latest", "rating", "downloads", "title"]


class CategoryRecord(RecordModel):
    id: str
    name: str
    description: str | None = None


class CategoryCreate(CamelModel):
    name: str
    description: str | None = None


class CategoryUpdate(CamelModel):
    """Update command: only fields explicitly set by the caller are applied."""

    name: str | None = None
    description: str | None = None

    @field_validator("name")
    @classmethod
    def _name_not_null(cls, v):
        if v is None or not v.strip():
            raise ValueError("name cannot be empty")
        return v.strip()

    def changes(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in self.model_fields_set}


class BookRecord(RecordModel):
    id: str
    title: str
    author: str
    description: str
    category_id: str | None = None
    cover_image: str | None = None
    book_file: str | None = None
    file_type: str | None = None
    download_count: int = 0
    created_at: datetime


class BookCreate(CamelModel):
    title: str
    author: str
    description: str
    category_id: str | None = None
    cover_image: str | None = None
    book_file: str | None = None
    file_type: str | None = None


class BookUpdate(CamelModel):
    """Update command for a book.

    Presence is tracked by pydantic's ``model_fields_set``: a field left out
    of the constructor is untouched, a field passed as ``None`` is cleared.
    Title, author and description cannot be cleared.
    """

    title: str | None = None
    author: str | None = None
    description: str | None = None
    category_id: str | None = None
    cover_image: str | None = None
    book_file: str | None = None
    file_type: str | None = None

    @field_validator("title", "author", "description")
    @classmethod
    def _required_text(cls, v):
        if v is None or not v.strip():
            raise ValueError("cannot be empty")
        return v

    def changes(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in self.model_fields_set}


class BookWithDetails(BookRecord):
    category: CategoryRecord | None = None
    average_rating: float = 0.0
    review_count: int = 0


class BookFilter(CamelModel):
    search: str | None = None
    category_id: str | None = None
    sort: SortOrder = "latest"
    limit: int | None = Field(default=None, ge=1)
