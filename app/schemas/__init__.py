from app.schemas.catalog import (
    BookCreate,
    BookFilter,
    BookRecord,
    BookUpdate,
    BookWithDetails,
    CategoryCreate,
    CategoryRecord,
    CategoryUpdate,
)
from app.schemas.library import (
    BookmarkRecord,
    DownloadEventRecord,
    LibraryStatsSchema,
    ReadingProgressRecord,
)
from app.schemas.review import ReviewRecord, ReviewWithUser
from app.schemas.user import UserOutSchema, UserRecord

__all__ = [
    "BookCreate",
    "BookFilter",
    "BookRecord",
    "BookUpdate",
    "BookWithDetails",
    "BookmarkRecord",
    "CategoryCreate",
    "CategoryRecord",
    "CategoryUpdate",
    "DownloadEventRecord",
    "LibraryStatsSchema",
    "ReadingProgressRecord",
    "ReviewRecord",
    "ReviewWithUser",
    "UserOutSchema",
    "UserRecord",
]
