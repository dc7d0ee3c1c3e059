"""Download event log. Append-only; anonymous downloads have no user_id."""
import uuid

from sqlalchemy import Column, ForeignKey, String

from app.core.timeutil import utcnow
from app.db.session import Base
from app.db.types import UTCDateTime


class DownloadEvent(Base):
    __tablename__ = "downloads"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    book_id = Column(String(36), ForeignKey("books.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    downloaded_at = Column(UTCDateTime, nullable=False, default=utcnow, index=True)
