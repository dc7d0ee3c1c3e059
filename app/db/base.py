"""SQLAlchemy declarative base and model imports for Alembic."""
from app.db.session import Base

# Import all models so Alembic can see them
from app.models.book import Book  # noqa: F401
from app.models.bookmark import Bookmark  # noqa: F401
from app.models.category import Category  # noqa: F401
from app.models.download import DownloadEvent  # noqa: F401
from app.models.reading_progress import ReadingProgress  # noqa: F401
from app.models.review import Review  # noqa: F401
from app.models.user import User  # noqa: F401

__all__ = ["Base", "User", "Category", "Book", "Review", "Bookmark", "ReadingProgress", "DownloadEvent"]
