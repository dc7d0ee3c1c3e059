from app.services.catalog import get_book, list_books, summarize_ratings
from app.services.auth import login, register

__all__ = ["get_book", "list_books", "summarize_ratings", "login", "register"]
