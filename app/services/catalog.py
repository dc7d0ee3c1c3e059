"""Catalog aggregation: rating metrics, category joins, search/filter/sort."""
from collections import defaultdict
from collections.abc import Iterable

from app.core.errors import NotFoundError, ValidationError
from app.schemas.catalog import BookFilter, BookRecord, BookWithDetails, CategoryRecord
from app.schemas.library import LibraryStatsSchema
from app.schemas.review import ReviewRecord, ReviewWithUser
from app.store.base import Store

MIN_RATING = 1
MAX_RATING = 5

# Category id meaning "no category filter"
ALL_CATEGORIES = "all"


def summarize_ratings(ratings: Iterable[int]) -> tuple[float, int]:
    """Return (average, count); the average of no ratings is 0.0."""
    ratings = list(ratings)
    if not ratings:
        return 0.0, 0
    return sum(ratings) / len(ratings), len(ratings)


def _with_details(
    book: BookRecord, category: CategoryRecord | None, reviews: list[ReviewRecord]
) -> BookWithDetails:
    average, count = summarize_ratings(r.rating for r in reviews)
    return BookWithDetails(
        **book.model_dump(),
        category=category,
        average_rating=average,
        review_count=count,
    )


def get_book(store: Store, book_id: str) -> BookWithDetails:
    book = store.get_book(book_id)
    if book is None:
        raise NotFoundError("Book not found")
    category = store.get_category(book.category_id) if book.category_id else None
    # one review read feeds both averageRating and reviewCount
    reviews = store.list_reviews(book.id)
    return _with_details(book, category, reviews)


def _matches_search(book: BookRecord, needle: str) -> bool:
    # title and author only; category names are not searched
    return needle in book.title.lower() or needle in book.author.lower()


def list_books(store: Store, query: BookFilter | None = None) -> list[BookWithDetails]:
    """Books with details, filtered, sorted and truncated per ``query``.

    Sorting is stable over creation order, so books that tie on the sort key
    keep their creation order.
    """
    query = query or BookFilter()
    books = store.list_books()
    categories = {c.id: c for c in store.list_categories()}
    reviews_by_book: dict[str, list[ReviewRecord]] = defaultdict(list)
    for review in store.list_reviews():
        reviews_by_book[review.book_id].append(review)

    result = [
        _with_details(
            book,
            categories.get(book.category_id) if book.category_id else None,
            reviews_by_book.get(book.id, []),
        )
        for book in books
    ]

    search = (query.search or "").strip().lower()
    if search:
        result = [b for b in result if _matches_search(b, search)]

    if query.category_id and query.category_id != ALL_CATEGORIES:
        result = [b for b in result if b.category_id == query.category_id]

    if query.sort == "rating":
        result.sort(key=lambda b: b.average_rating, reverse=True)
    elif query.sort == "downloads":
        result.sort(key=lambda b: b.download_count, reverse=True)
    elif query.sort == "title":
        result.sort(key=lambda b: b.title)
    else:
        # newest first, also among books sharing a timestamp
        result.reverse()
        result.sort(key=lambda b: b.created_at, reverse=True)

    if query.limit:
        result = result[: query.limit]
    return result


def add_review(store: Store, book_id: str, user_id: str, rating, comment: str | None = None) -> ReviewRecord:
    if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")
    comment = (comment or "").strip() or None
    return store.create_review(book_id=book_id, user_id=user_id, rating=rating, comment=comment)


def list_reviews(store: Store, book_id: str) -> list[ReviewWithUser]:
    if store.get_book(book_id) is None:
        raise NotFoundError("Book not found")
    return store.list_reviews_with_users(book_id)


def library_stats(store: Store) -> LibraryStatsSchema:
    return store.count_stats()
