"""Pydantic schemas for reviews."""
from datetime import datetime

from pydantic import StrictInt

from app.schemas.common import CamelModel, RecordModel


class ReviewRecord(RecordModel):
    id: str
    book_id: str
    user_id: str
    rating: int
    comment: str | None = None
    created_at: datetime


class ReviewCreateSchema(CamelModel):
    # strict: JSON true, 3.0 and "4" are refused; range is checked by the catalog service
    rating: StrictInt | None = None
    comment: str | None = None


class ReviewUserSchema(CamelModel):
    id: str
    name: str
    email: str


class ReviewWithUser(ReviewRecord):
    user: ReviewUserSchema
