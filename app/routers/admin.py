"""Admin console routes: users, books, categories, activity logs."""
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile

from app.core.errors import NotFoundError, ValidationError
from app.routers.deps import AdminUser, FilesDep, StoreDep
from app.schemas.catalog import BookCreate, BookRecord, BookUpdate, CategoryCreate, CategoryRecord, CategoryUpdate
from app.schemas.common import MessageSchema
from app.schemas.library import DownloadEventRecord
from app.schemas.review import ReviewRecord
from app.schemas.user import BlockUpdateSchema, RoleUpdateSchema, UserOutSchema
from app.services import users as user_service
from app.services.files import BOOKS, COVERS, FileStorage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])

# multipart text fields of the book form -> BookUpdate field names
BOOK_TEXT_FIELDS = {"title": "title", "author": "author", "description": "description"}


async def book_form_fields(request: Request) -> dict[str, str]:
    """Text fields actually present in the submitted multipart form."""
    form = await request.form()
    return {key: value for key, value in form.items() if isinstance(value, str)}


def _store_uploads(files: FileStorage, cover: UploadFile | None, book_file: UploadFile | None) -> dict:
    """Save the uploaded files; returns the resulting book fields."""
    stored = {}
    try:
        if cover is not None and cover.filename:
            stored["cover_image"] = files.save(cover, COVERS)
        if book_file is not None and book_file.filename:
            stored["book_file"] = files.save(book_file, BOOKS)
            stored["file_type"] = files.file_type(book_file)
    except Exception:
        _discard_uploads(files, stored)
        raise
    return stored


def _discard_uploads(files: FileStorage, stored: dict) -> None:
    for key in ("cover_image", "book_file"):
        files.delete(stored.get(key))


# ---------- users ----------

@router.get("/users", response_model=list[UserOutSchema])
def list_users(store: StoreDep, admin: AdminUser):
    return store.list_users()


@router.patch("/users/{user_id}/role", response_model=UserOutSchema)
def update_user_role(user_id: str, body: RoleUpdateSchema, store: StoreDep, admin: AdminUser):
    return user_service.set_user_role(store, admin, user_id, body.role)


@router.patch("/users/{user_id}/block", response_model=UserOutSchema)
def update_user_block(user_id: str, body: BlockUpdateSchema, store: StoreDep, admin: AdminUser):
    return user_service.set_user_blocked(store, admin, user_id, body.is_blocked)


# ---------- activity ----------

@router.get("/downloads", response_model=list[DownloadEventRecord])
def list_downloads(store: StoreDep, admin: AdminUser):
    return store.list_downloads()


@router.get("/reviews", response_model=list[ReviewRecord])
def list_reviews(store: StoreDep, admin: AdminUser):
    return store.list_reviews()


# ---------- books ----------

@router.post("/books", response_model=BookRecord)
def create_book(
    store: StoreDep,
    files: FilesDep,
    admin: AdminUser,
    title: Annotated[str, Form()] = "",
    author: Annotated[str, Form()] = "",
    description: Annotated[str, Form()] = "",
    category_id: Annotated[str | None, Form(alias="categoryId")] = None,
    cover: Annotated[UploadFile | None, File()] = None,
    book: Annotated[UploadFile | None, File()] = None,
):
    """Create a book from multipart form fields plus optional cover/book files."""
    title, author, description = title.strip(), author.strip(), description.strip()
    # validate before any file touches the upload directory
    if not title or not author or not description:
        raise ValidationError("Title, author and description are required")
    category_id = (category_id or "").strip() or None
    if category_id is not None and store.get_category(category_id) is None:
        raise ValidationError("Category not found")

    stored = _store_uploads(files, cover, book)
    try:
        created = store.create_book(
            BookCreate(title=title, author=author, description=description, category_id=category_id, **stored)
        )
    except Exception:
        _discard_uploads(files, stored)
        raise
    logger.info("Admin %s created book %s", admin.id, created.id)
    return created


@router.patch("/books/{book_id}", response_model=BookRecord)
def update_book(
    book_id: str,
    store: StoreDep,
    files: FilesDep,
    admin: AdminUser,
    fields: Annotated[dict[str, str], Depends(book_form_fields)],
    cover: Annotated[UploadFile | None, File()] = None,
    book: Annotated[UploadFile | None, File()] = None,
):
    """Apply only the form fields that were sent; ``categoryId=""`` clears the category."""
    existing = store.get_book(book_id)
    if existing is None:
        raise NotFoundError("Book not found")

    changes = {}
    for form_key, field in BOOK_TEXT_FIELDS.items():
        if form_key in fields:
            value = fields[form_key].strip()
            if not value:
                raise ValidationError(f"{form_key.capitalize()} cannot be empty")
            changes[field] = value
    if "categoryId" in fields:
        changes["category_id"] = fields["categoryId"].strip() or None
        if changes["category_id"] is not None and store.get_category(changes["category_id"]) is None:
            raise ValidationError("Category not found")

    stored = _store_uploads(files, cover, book)
    try:
        updated = store.update_book(book_id, BookUpdate(**changes, **stored))
    except Exception:
        _discard_uploads(files, stored)
        raise

    # replaced files are no longer referenced
    if "cover_image" in stored:
        files.delete(existing.cover_image)
    if "book_file" in stored:
        files.delete(existing.book_file)
    logger.info("Admin %s updated book %s: %s", admin.id, book_id, sorted({**changes, **stored}))
    return updated


@router.delete("/books/{book_id}", response_model=MessageSchema)
def delete_book(book_id: str, store: StoreDep, files: FilesDep, admin: AdminUser):
    """Delete a book with its reviews, bookmarks, progress and download log."""
    removed = store.delete_book(book_id)
    files.delete(removed.cover_image)
    files.delete(removed.book_file)
    logger.info("Admin %s deleted book %s", admin.id, book_id)
    return MessageSchema(message="Book deleted")


# ---------- categories ----------

@router.post("/categories", response_model=CategoryRecord)
def create_category(body: CategoryCreate, store: StoreDep, admin: AdminUser):
    name = body.name.strip()
    if not name:
        raise ValidationError("Category name is required")
    category = store.create_category(CategoryCreate(name=name, description=body.description))
    logger.info("Admin %s created category %s", admin.id, category.id)
    return category


@router.patch("/categories/{category_id}", response_model=CategoryRecord)
def update_category(category_id: str, body: CategoryUpdate, store: StoreDep, admin: AdminUser):
    return store.update_category(category_id, body)


@router.delete("/categories/{category_id}", response_model=MessageSchema)
def delete_category(category_id: str, store: StoreDep, admin: AdminUser):
    """Refused with 409 while any book still belongs to the category."""
    store.delete_category(category_id)
    logger.info("Admin %s deleted category %s", admin.id, category_id)
    return MessageSchema(message="Category deleted")
