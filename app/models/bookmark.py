"""Bookmark model: at most one per (user, book)."""
import uuid

from sqlalchemy import Column, ForeignKey, String, UniqueConstraint

from app.core.timeutil import utcnow
from app.db.session import Base
from app.db.types import UTCDateTime


class Bookmark(Base):
    __tablename__ = "bookmarks"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    book_id = Column(String(36), ForeignKey("books.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    __table_args__ = (UniqueConstraint("user_id", "book_id", name="uq_bookmarks_user_book"),)
