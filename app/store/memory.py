"""Process-local store backed by dicts; used for tests and database-less runs."""
import threading
import uuid

from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.core.timeutil import utcnow
from app.schemas.catalog import BookCreate, BookRecord, BookUpdate, CategoryCreate, CategoryRecord, CategoryUpdate
from app.schemas.library import BookmarkRecord, DownloadEventRecord, LibraryStatsSchema, ReadingProgressRecord
from app.schemas.review import ReviewRecord, ReviewUserSchema, ReviewWithUser
from app.schemas.user import UserRecord
from app.store.base import Store, normalize_email


def _new_id() -> str:
    return str(uuid.uuid4())


class MemoryStore(Store):
    """Dict-per-entity store.

    Records are frozen pydantic models, so they are shared with callers
    without copying. Every public method runs under one re-entrant lock,
    which makes each multi-step operation (bookmark check-then-insert,
    progress upsert, download increment-and-log) atomic.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._users: dict[str, UserRecord] = {}
        self._categories: dict[str, CategoryRecord] = {}
        self._books: dict[str, BookRecord] = {}
        self._reviews: dict[str, ReviewRecord] = {}
        self._bookmarks: dict[str, BookmarkRecord] = {}
        self._progress: dict[tuple[str, str], ReadingProgressRecord] = {}
        self._downloads: dict[str, DownloadEventRecord] = {}

    # ----- helpers -----

    def _require_user(self, user_id: str) -> UserRecord:
        user = self._users.get(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def _require_book(self, book_id: str) -> BookRecord:
        book = self._books.get(book_id)
        if book is None:
            raise NotFoundError("Book not found")
        return book

    def _check_category_ref(self, category_id: str | None) -> None:
        if category_id is not None and category_id not in self._categories:
            raise ValidationError("Category not found")

    # ----- users -----

    def get_user(self, user_id):
        with self._lock:
            return self._users.get(user_id)

    def get_user_by_email(self, email):
        email = normalize_email(email)
        with self._lock:
            return next((u for u in self._users.values() if u.email == email), None)

    def create_user(self, *, email, password_hash, name, role="user", is_blocked=False):
        email = normalize_email(email)
        with self._lock:
            if any(u.email == email for u in self._users.values()):
                raise ConflictError("Email already registered")
            user = UserRecord(
                id=_new_id(),
                email=email,
                password_hash=password_hash,
                name=name,
                role=role,
                is_blocked=is_blocked,
                created_at=utcnow(),
            )
            self._users[user.id] = user
            return user

    def list_users(self):
        with self._lock:
            return list(reversed(self._users.values()))

    def update_user_role(self, user_id, role):
        with self._lock:
            user = self._require_user(user_id).model_copy(update={"role": role})
            self._users[user_id] = user
            return user

    def update_user_block(self, user_id, is_blocked):
        with self._lock:
            user = self._require_user(user_id).model_copy(update={"is_blocked": is_blocked})
            self._users[user_id] = user
            return user

    # ----- categories -----

    def get_category(self, category_id):
        with self._lock:
            return self._categories.get(category_id)

    def list_categories(self):
        with self._lock:
            return sorted(self._categories.values(), key=lambda c: c.name)

    def create_category(self, data: CategoryCreate):
        with self._lock:
            if any(c.name == data.name for c in self._categories.values()):
                raise ConflictError("Category name already exists")
            category = CategoryRecord(id=_new_id(), name=data.name, description=data.description)
            self._categories[category.id] = category
            return category

    def update_category(self, category_id, command: CategoryUpdate):
        changes = command.changes()
        with self._lock:
            existing = self._categories.get(category_id)
            if existing is None:
                raise NotFoundError("Category not found")
            name = changes.get("name")
            if name is not None and any(
                c.name == name and c.id != category_id for c in self._categories.values()
            ):
                raise ConflictError("Category name already exists")
            category = existing.model_copy(update=changes)
            self._categories[category_id] = category
            return category

    def delete_category(self, category_id):
        with self._lock:
            if category_id not in self._categories:
                raise NotFoundError("Category not found")
            if any(b.category_id == category_id for b in self._books.values()):
                raise ConflictError("Category is still used by one or more books")
            del self._categories[category_id]

    # ----- books -----

    def get_book(self, book_id):
        with self._lock:
            return self._books.get(book_id)

    def list_books(self):
        with self._lock:
            return list(self._books.values())

    def create_book(self, data: BookCreate):
        with self._lock:
            self._check_category_ref(data.category_id)
            book = BookRecord(
                id=_new_id(),
                download_count=0,
                created_at=utcnow(),
                **data.model_dump(),
            )
            self._books[book.id] = book
            return book

    def update_book(self, book_id, command: BookUpdate):
        changes = command.changes()
        with self._lock:
            existing = self._require_book(book_id)
            if "category_id" in changes:
                self._check_category_ref(changes["category_id"])
            book = existing.model_copy(update=changes)
            self._books[book_id] = book
            return book

    def delete_book(self, book_id):
        with self._lock:
            book = self._require_book(book_id)
            self._reviews = {k: r for k, r in self._reviews.items() if r.book_id != book_id}
            self._bookmarks = {k: b for k, b in self._bookmarks.items() if b.book_id != book_id}
            self._progress = {k: p for k, p in self._progress.items() if p.book_id != book_id}
            self._downloads = {k: d for k, d in self._downloads.items() if d.book_id != book_id}
            del self._books[book_id]
            return book

    def increment_download_count(self, book_id):
        with self._lock:
            book = self._require_book(book_id)
            book = book.model_copy(update={"download_count": book.download_count + 1})
            self._books[book_id] = book
            return book

    # ----- reviews -----

    def create_review(self, *, book_id, user_id, rating, comment):
        with self._lock:
            self._require_book(book_id)
            self._require_user(user_id)
            review = ReviewRecord(
                id=_new_id(),
                book_id=book_id,
                user_id=user_id,
                rating=rating,
                comment=comment,
                created_at=utcnow(),
            )
            self._reviews[review.id] = review
            return review

    def list_reviews(self, book_id=None):
        with self._lock:
            reviews = [r for r in self._reviews.values() if book_id is None or r.book_id == book_id]
        return list(reversed(reviews))

    def list_reviews_with_users(self, book_id):
        result = []
        with self._lock:
            for review in self.list_reviews(book_id):
                user = self._users.get(review.user_id)
                if user is None:
                    continue
                result.append(
                    ReviewWithUser(
                        **review.model_dump(),
                        user=ReviewUserSchema(id=user.id, name=user.name, email=user.email),
                    )
                )
        return result

    # ----- bookmarks -----

    def list_bookmarks(self, user_id):
        with self._lock:
            return [b for b in reversed(self._bookmarks.values()) if b.user_id == user_id]

    def create_bookmark(self, user_id, book_id):
        with self._lock:
            self._require_user(user_id)
            self._require_book(book_id)
            if self.is_bookmarked(user_id, book_id):
                raise ConflictError("Book already bookmarked")
            bookmark = BookmarkRecord(id=_new_id(), user_id=user_id, book_id=book_id, created_at=utcnow())
            self._bookmarks[bookmark.id] = bookmark
            return bookmark

    def delete_bookmark(self, user_id, book_id):
        with self._lock:
            for key, bookmark in self._bookmarks.items():
                if bookmark.user_id == user_id and bookmark.book_id == book_id:
                    del self._bookmarks[key]
                    return True
            return False

    def is_bookmarked(self, user_id, book_id):
        with self._lock:
            return any(b.user_id == user_id and b.book_id == book_id for b in self._bookmarks.values())

    # ----- reading progress -----

    def get_reading_progress(self, user_id, book_id):
        with self._lock:
            return self._progress.get((user_id, book_id))

    def upsert_reading_progress(self, user_id, book_id, last_page, total_pages=None):
        key = (user_id, book_id)
        with self._lock:
            self._require_user(user_id)
            self._require_book(book_id)
            existing = self._progress.get(key)
            if existing is not None:
                progress = existing.model_copy(
                    update={
                        "last_page": last_page,
                        "total_pages": total_pages if total_pages is not None else existing.total_pages,
                        "updated_at": utcnow(),
                    }
                )
            else:
                progress = ReadingProgressRecord(
                    id=_new_id(),
                    user_id=user_id,
                    book_id=book_id,
                    last_page=last_page,
                    total_pages=total_pages,
                    updated_at=utcnow(),
                )
            self._progress[key] = progress
            return progress

    # ----- downloads -----

    def record_download(self, book_id, user_id=None):
        with self._lock:
            self.increment_download_count(book_id)
            if user_id is not None and user_id not in self._users:
                user_id = None
            event = DownloadEventRecord(id=_new_id(), book_id=book_id, user_id=user_id, downloaded_at=utcnow())
            self._downloads[event.id] = event
            return event

    def list_downloads(self):
        with self._lock:
            return list(reversed(self._downloads.values()))

    # ----- stats -----

    def count_stats(self):
        with self._lock:
            return LibraryStatsSchema(
                books=len(self._books),
                users=len(self._users),
                downloads=len(self._downloads),
                reviews=len(self._reviews),
            )
