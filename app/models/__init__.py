from app.models.user import User
from app.models.category import Category
from app.models.book import Book
from app.models.review import Review
from app.models.bookmark import Bookmark
from app.models.reading_progress import ReadingProgress
from app.models.download import DownloadEvent

__all__ = ["User", "Category", "Book", "Review", "Bookmark", "ReadingProgress", "DownloadEvent"]
