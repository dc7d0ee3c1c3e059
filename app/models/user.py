"""User model: readers and admins."""
import uuid

from sqlalchemy import Boolean, Column, String
from sqlalchemy.orm import relationship

from app.core.timeutil import utcnow
from app.db.session import Base
from app.db.types import UTCDateTime


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    role = Column(String(16), nullable=False, default="user")  # user | admin
    is_blocked = Column(Boolean, nullable=False, default=False)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    reviews = relationship("Review", back_populates="user", passive_deletes=True)
