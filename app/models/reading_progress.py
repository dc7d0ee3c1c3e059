"""Reading progress: last page reached per (user, book); upserted in place."""
import uuid

from sqlalchemy import Column, ForeignKey, Integer, String, UniqueConstraint

from app.core.timeutil import utcnow
from app.db.session import Base
from app.db.types import UTCDateTime


class ReadingProgress(Base):
    __tablename__ = "reading_progress"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    book_id = Column(String(36), ForeignKey("books.id", ondelete="CASCADE"), nullable=False, index=True)
    last_page = Column(Integer, nullable=False, default=0)
    total_pages = Column(Integer, nullable=True)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow)

    __table_args__ = (UniqueConstraint("user_id", "book_id", name="uq_reading_progress_user_book"),)
