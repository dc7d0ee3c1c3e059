"""Book model: catalog entry plus stored cover/file paths and a download counter."""
import uuid

from sqlalchemy import Column, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from app.core.timeutil import utcnow
from app.db.session import Base
from app.db.types import UTCDateTime


class Book(Base):
    __tablename__ = "books"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(512), nullable=False, index=True)
    author = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=False)
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=True, index=True)
    cover_image = Column(String(512), nullable=True)  # /uploads/covers/...
    book_file = Column(String(512), nullable=True)  # /uploads/books/...
    file_type = Column(String(16), nullable=True)
    download_count = Column(Integer, nullable=False, default=0)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow, index=True)

    category = relationship("Category", back_populates="books")
    reviews = relationship("Review", back_populates="book", cascade="all, delete-orphan", passive_deletes=True)
