"""Relational store on SQLAlchemy; one session (and transaction) per operation."""
import logging
from contextlib import contextmanager

from sqlalchemy import delete, exists, func, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import ConflictError, LibraryError, NotFoundError, UnexpectedError, ValidationError
from app.core.timeutil import utcnow
from app.db.base import Base
from app.db.session import make_engine, make_session_factory
from app.models.book import Book
from app.models.bookmark import Bookmark
from app.models.category import Category
from app.models.download import DownloadEvent
from app.models.reading_progress import ReadingProgress
from app.models.review import Review
from app.models.user import User
from app.schemas.catalog import BookCreate, BookRecord, BookUpdate, CategoryCreate, CategoryRecord, CategoryUpdate
from app.schemas.library import BookmarkRecord, DownloadEventRecord, LibraryStatsSchema, ReadingProgressRecord
from app.schemas.review import ReviewRecord, ReviewUserSchema, ReviewWithUser
from app.schemas.user import UserRecord
from app.store.base import Store, normalize_email

logger = logging.getLogger(__name__)


class SqlStore(Store):
    def __init__(self, engine: Engine):
        self.engine = engine
        self._session_factory = make_session_factory(engine)

    @classmethod
    def from_url(cls, database_url: str, echo: bool = False) -> "SqlStore":
        return cls(make_engine(database_url, echo=echo))

    def init(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    def close(self) -> None:
        self.engine.dispose()

    @contextmanager
    def _transaction(self, conflict_message: str = "Conflicting record"):
        """Yield a session and commit it; map driver errors to library errors."""
        db: Session = self._session_factory()
        try:
            yield db
            db.commit()
        except LibraryError:
            db.rollback()
            raise
        except IntegrityError as exc:
            db.rollback()
            logger.debug("Integrity error: %s", exc)
            raise ConflictError(conflict_message) from exc
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Database operation failed")
            raise UnexpectedError("Database operation failed") from exc
        finally:
            db.close()

    @staticmethod
    def _require(db: Session, model, pk: str, message: str):
        row = db.get(model, pk)
        if row is None:
            raise NotFoundError(message)
        return row

    @staticmethod
    def _check_category_ref(db: Session, category_id: str | None) -> None:
        if category_id is not None and db.get(Category, category_id) is None:
            raise ValidationError("Category not found")

    # ----- users -----

    def get_user(self, user_id):
        with self._transaction() as db:
            user = db.get(User, user_id)
            return UserRecord.model_validate(user) if user else None

    def get_user_by_email(self, email):
        with self._transaction() as db:
            user = db.execute(select(User).where(User.email == normalize_email(email))).scalar_one_or_none()
            return UserRecord.model_validate(user) if user else None

    def create_user(self, *, email, password_hash, name, role="user", is_blocked=False):
        email = normalize_email(email)
        with self._transaction("Email already registered") as db:
            if db.execute(select(exists().where(User.email == email))).scalar():
                raise ConflictError("Email already registered")
            user = User(email=email, password_hash=password_hash, name=name, role=role, is_blocked=is_blocked)
            db.add(user)
            db.flush()
            return UserRecord.model_validate(user)

    def list_users(self):
        with self._transaction() as db:
            rows = db.execute(select(User).order_by(User.created_at.desc())).scalars().all()
            return [UserRecord.model_validate(u) for u in rows]

    def update_user_role(self, user_id, role):
        with self._transaction() as db:
            user = self._require(db, User, user_id, "User not found")
            user.role = role
            db.flush()
            return UserRecord.model_validate(user)

    def update_user_block(self, user_id, is_blocked):
        with self._transaction() as db:
            user = self._require(db, User, user_id, "User not found")
            user.is_blocked = is_blocked
            db.flush()
            return UserRecord.model_validate(user)

    # ----- categories -----

    def get_category(self, category_id):
        with self._transaction() as db:
            category = db.get(Category, category_id)
            return CategoryRecord.model_validate(category) if category else None

    def list_categories(self):
        with self._transaction() as db:
            rows = db.execute(select(Category).order_by(Category.name)).scalars().all()
            return [CategoryRecord.model_validate(c) for c in rows]

    def create_category(self, data: CategoryCreate):
        with self._transaction("Category name already exists") as db:
            if db.execute(select(exists().where(Category.name == data.name))).scalar():
                raise ConflictError("Category name already exists")
            category = Category(name=data.name, description=data.description)
            db.add(category)
            db.flush()
            return CategoryRecord.model_validate(category)

    def update_category(self, category_id, command: CategoryUpdate):
        changes = command.changes()
        with self._transaction("Category name already exists") as db:
            category = self._require(db, Category, category_id, "Category not found")
            name = changes.get("name")
            if name is not None:
                taken = db.execute(
                    select(exists().where(Category.name == name, Category.id != category_id))
                ).scalar()
                if taken:
                    raise ConflictError("Category name already exists")
            for field, value in changes.items():
                setattr(category, field, value)
            db.flush()
            return CategoryRecord.model_validate(category)

    def delete_category(self, category_id):
        with self._transaction("Category is still used by one or more books") as db:
            category = self._require(db, Category, category_id, "Category not found")
            if db.execute(select(exists().where(Book.category_id == category_id))).scalar():
                raise ConflictError("Category is still used by one or more books")
            db.delete(category)

    # ----- books -----

    def get_book(self, book_id):
        with self._transaction() as db:
            book = db.get(Book, book_id)
            return BookRecord.model_validate(book) if book else None

    def list_books(self):
        with self._transaction() as db:
            # utcnow() never repeats in-process; id only separates rows from different processes
            rows = db.execute(select(Book).order_by(Book.created_at.asc(), Book.id.asc())).scalars().all()
            return [BookRecord.model_validate(b) for b in rows]

    def create_book(self, data: BookCreate):
        with self._transaction() as db:
            self._check_category_ref(db, data.category_id)
            book = Book(**data.model_dump(), download_count=0)
            db.add(book)
            db.flush()
            return BookRecord.model_validate(book)

    def update_book(self, book_id, command: BookUpdate):
        changes = command.changes()
        with self._transaction() as db:
            book = self._require(db, Book, book_id, "Book not found")
            if "category_id" in changes:
                self._check_category_ref(db, changes["category_id"])
            for field, value in changes.items():
                setattr(book, field, value)
            db.flush()
            return BookRecord.model_validate(book)

    def delete_book(self, book_id):
        with self._transaction() as db:
            book = self._require(db, Book, book_id, "Book not found")
            removed = BookRecord.model_validate(book)
            for model in (Review, Bookmark, ReadingProgress, DownloadEvent):
                db.execute(delete(model).where(model.book_id == book_id))
            db.execute(delete(Book).where(Book.id == book_id))
            return removed

    def increment_download_count(self, book_id):
        with self._transaction() as db:
            return self._increment(db, book_id)

    @staticmethod
    def _increment(db: Session, book_id: str) -> BookRecord:
        # single UPDATE so concurrent requests cannot lose increments
        result = db.execute(
            update(Book)
            .where(Book.id == book_id)
            .values(download_count=Book.download_count + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFoundError("Book not found")
        book = db.execute(
            select(Book).where(Book.id == book_id).execution_options(populate_existing=True)
        ).scalar_one()
        return BookRecord.model_validate(book)

    # ----- reviews -----

    def create_review(self, *, book_id, user_id, rating, comment):
        with self._transaction() as db:
            self._require(db, Book, book_id, "Book not found")
            self._require(db, User, user_id, "User not found")
            review = Review(book_id=book_id, user_id=user_id, rating=rating, comment=comment)
            db.add(review)
            db.flush()
            return ReviewRecord.model_validate(review)

    def list_reviews(self, book_id=None):
        stmt = select(Review).order_by(Review.created_at.desc())
        if book_id is not None:
            stmt = stmt.where(Review.book_id == book_id)
        with self._transaction() as db:
            return [ReviewRecord.model_validate(r) for r in db.execute(stmt).scalars().all()]

    def list_reviews_with_users(self, book_id):
        stmt = (
            select(Review, User)
            .join(User, User.id == Review.user_id)
            .where(Review.book_id == book_id)
            .order_by(Review.created_at.desc())
        )
        with self._transaction() as db:
            return [
                ReviewWithUser(
                    **ReviewRecord.model_validate(review).model_dump(),
                    user=ReviewUserSchema(id=user.id, name=user.name, email=user.email),
                )
                for review, user in db.execute(stmt).all()
            ]

    # ----- bookmarks -----

    def list_bookmarks(self, user_id):
        stmt = select(Bookmark).where(Bookmark.user_id == user_id).order_by(Bookmark.created_at.desc())
        with self._transaction() as db:
            return [BookmarkRecord.model_validate(b) for b in db.execute(stmt).scalars().all()]

    def create_bookmark(self, user_id, book_id):
        # uq_bookmarks_user_book turns a lost check-then-insert race into IntegrityError
        with self._transaction("Book already bookmarked") as db:
            self._require(db, User, user_id, "User not found")
            self._require(db, Book, book_id, "Book not found")
            if self._bookmark_exists(db, user_id, book_id):
                raise ConflictError("Book already bookmarked")
            bookmark = Bookmark(user_id=user_id, book_id=book_id)
            db.add(bookmark)
            db.flush()
            return BookmarkRecord.model_validate(bookmark)

    def delete_bookmark(self, user_id, book_id):
        with self._transaction() as db:
            result = db.execute(
                delete(Bookmark).where(Bookmark.user_id == user_id, Bookmark.book_id == book_id)
            )
            return result.rowcount > 0

    def is_bookmarked(self, user_id, book_id):
        with self._transaction() as db:
            return self._bookmark_exists(db, user_id, book_id)

    @staticmethod
    def _bookmark_exists(db: Session, user_id: str, book_id: str) -> bool:
        return bool(
            db.execute(select(exists().where(Bookmark.user_id == user_id, Bookmark.book_id == book_id))).scalar()
        )

    # ----- reading progress -----

    def get_reading_progress(self, user_id, book_id):
        stmt = select(ReadingProgress).where(ReadingProgress.user_id == user_id, ReadingProgress.book_id == book_id)
        with self._transaction() as db:
            progress = db.execute(stmt).scalar_one_or_none()
            return ReadingProgressRecord.model_validate(progress) if progress else None

    def upsert_reading_progress(self, user_id, book_id, last_page, total_pages=None):
        try:
            return self._upsert_progress(user_id, book_id, last_page, total_pages)
        except ConflictError:
            # a concurrent insert for the same pair won; the row exists now
            logger.debug("Reading progress insert raced for user=%s book=%s; retrying as update", user_id, book_id)
            return self._upsert_progress(user_id, book_id, last_page, total_pages)

    def _upsert_progress(self, user_id, book_id, last_page, total_pages):
        with self._transaction("Reading progress already exists") as db:
            self._require(db, User, user_id, "User not found")
            self._require(db, Book, book_id, "Book not found")
            progress = db.execute(
                select(ReadingProgress).where(
                    ReadingProgress.user_id == user_id, ReadingProgress.book_id == book_id
                )
            ).scalar_one_or_none()
            if progress is None:
                progress = ReadingProgress(
                    user_id=user_id, book_id=book_id, last_page=last_page, total_pages=total_pages
                )
                db.add(progress)
            else:
                progress.last_page = last_page
                if total_pages is not None:
                    progress.total_pages = total_pages
                progress.updated_at = utcnow()
            db.flush()
            return ReadingProgressRecord.model_validate(progress)

    # ----- downloads -----

    def record_download(self, book_id, user_id=None):
        with self._transaction() as db:
            self._increment(db, book_id)
            if user_id is not None and db.get(User, user_id) is None:
                user_id = None
            event = DownloadEvent(book_id=book_id, user_id=user_id)
            db.add(event)
            db.flush()
            return DownloadEventRecord.model_validate(event)

    def list_downloads(self):
        with self._transaction() as db:
            rows = db.execute(select(DownloadEvent).order_by(DownloadEvent.downloaded_at.desc())).scalars().all()
            return [DownloadEventRecord.model_validate(d) for d in rows]

    # ----- stats -----

    def count_stats(self):
        with self._transaction() as db:
            return LibraryStatsSchema(
                books=db.scalar(select(func.count()).select_from(Book)) or 0,
                users=db.scalar(select(func.count()).select_from(User)) or 0,
                downloads=db.scalar(select(func.count()).select_from(DownloadEvent)) or 0,
                reviews=db.scalar(select(func.count()).select_from(Review)) or 0,
            )
