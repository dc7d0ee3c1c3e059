"""Entity store interface shared by the SQL and in-memory backends."""
from abc import ABC, abstractmethod

from app.schemas.catalog import BookCreate, BookRecord, BookUpdate, CategoryCreate, CategoryRecord, CategoryUpdate
from app.schemas.library import BookmarkRecord, DownloadEventRecord, LibraryStatsSchema, ReadingProgressRecord
from app.schemas.review import ReviewRecord, ReviewWithUser
from app.schemas.user import UserRecord


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


class Store(ABC):
    """CRUD over the library's entities.

    Lookups (``get_*``) return None for unknown ids. Mutations raise
    ``NotFoundError`` for unknown targets, ``ConflictError`` when a uniqueness
    or referential rule would be broken, ``ValidationError`` for bad
    references and ``UnexpectedError`` for storage failures.

    Referential policy: deleting a category is refused while any book
    references it; deleting a book removes its reviews, bookmarks, reading
    progress and download events in the same transaction.
    """

    def init(self) -> None:
        """Prepare the backing storage (create tables etc.)."""

    def close(self) -> None:
        """Release backing resources."""

    # ----- users -----

    @abstractmethod
    def get_user(self, user_id: str) -> UserRecord | None: ...

    @abstractmethod
    def get_user_by_email(self, email: str) -> UserRecord | None: ...

    @abstractmethod
    def create_user(
        self, *, email: str, password_hash: str, name: str, role: str = "user", is_blocked: bool = False
    ) -> UserRecord: ...

    @abstractmethod
    def list_users(self) -> list[UserRecord]:
        """All users, newest first."""

    @abstractmethod
    def update_user_role(self, user_id: str, role: str) -> UserRecord: ...

    @abstractmethod
    def update_user_block(self, user_id: str, is_blocked: bool) -> UserRecord: ...

    # ----- categories -----

    @abstractmethod
    def get_category(self, category_id: str) -> CategoryRecord | None: ...

    @abstractmethod
    def list_categories(self) -> list[CategoryRecord]:
        """All categories ordered by name."""

    @abstractmethod
    def create_category(self, data: CategoryCreate) -> CategoryRecord: ...

    @abstractmethod
    def update_category(self, category_id: str, command: CategoryUpdate) -> CategoryRecord: ...

    @abstractmethod
    def delete_category(self, category_id: str) -> None: ...

    # ----- books -----

    @abstractmethod
    def get_book(self, book_id: str) -> BookRecord | None: ...

    @abstractmethod
    def list_books(self) -> list[BookRecord]:
        """All books in creation order, oldest first."""

    @abstractmethod
    def create_book(self, data: BookCreate) -> BookRecord: ...

    @abstractmethod
    def update_book(self, book_id: str, command: BookUpdate) -> BookRecord: ...

    @abstractmethod
    def delete_book(self, book_id: str) -> BookRecord:
        """Delete a book with all dependent rows; returns the removed book."""

    @abstractmethod
    def increment_download_count(self, book_id: str) -> BookRecord: ...

    # ----- reviews -----

    @abstractmethod
    def create_review(self, *, book_id: str, user_id: str, rating: int, comment: str | None) -> ReviewRecord: ...

    @abstractmethod
    def list_reviews(self, book_id: str | None = None) -> list[ReviewRecord]:
        """Reviews, newest first; all of them when ``book_id`` is None."""

    @abstractmethod
    def list_reviews_with_users(self, book_id: str) -> list[ReviewWithUser]:
        """Reviews of a book joined with their authors, newest first."""

    # ----- bookmarks -----

    @abstractmethod
    def list_bookmarks(self, user_id: str) -> list[BookmarkRecord]: ...

    @abstractmethod
    def create_bookmark(self, user_id: str, book_id: str) -> BookmarkRecord: ...

    @abstractmethod
    def delete_bookmark(self, user_id: str, book_id: str) -> bool:
        """Remove the bookmark if present; returns whether one was removed."""

    @abstractmethod
    def is_bookmarked(self, user_id: str, book_id: str) -> bool: ...

    # ----- reading progress -----

    @abstractmethod
    def get_reading_progress(self, user_id: str, book_id: str) -> ReadingProgressRecord | None: ...

    @abstractmethod
    def upsert_reading_progress(
        self, user_id: str, book_id: str, last_page: int, total_pages: int | None = None
    ) -> ReadingProgressRecord: ...

    # ----- downloads -----

    @abstractmethod
    def record_download(self, book_id: str, user_id: str | None = None) -> DownloadEventRecord:
        """Increment the book's counter and append a download event atomically."""

    @abstractmethod
    def list_downloads(self) -> list[DownloadEventRecord]: ...

    # ----- stats -----

    @abstractmethod
    def count_stats(self) -> LibraryStatsSchema: ...
