"""Uploaded cover images and book files on local disk."""
import logging
import uuid
from pathlib import Path, PurePosixPath

from fastapi import UploadFile

from app.core.errors import ValidationError

logger = logging.getLogger(__name__)

URL_PREFIX = "/uploads"
COVERS = "covers"
BOOKS = "books"


class FileStorage:
    """Stores uploads under ``<root>/covers`` and ``<root>/books``.

    Callers get back a stable relative URL path (``/uploads/books/<name>``)
    and never see the on-disk location.
    """

    def __init__(self, root: Path, max_bytes: int):
        self.root = Path(root)
        self.max_bytes = max_bytes

    def ensure_dirs(self) -> None:
        for kind in (COVERS, BOOKS):
            (self.root / kind).mkdir(parents=True, exist_ok=True)

    @staticmethod
    def file_type(upload: UploadFile) -> str | None:
        suffix = PurePosixPath(upload.filename or "").suffix
        return suffix[1:].lower() or None

    def save(self, upload: UploadFile, kind: str) -> str:
        if kind not in (COVERS, BOOKS):
            raise ValueError(f"Unknown upload kind: {kind}")
        self.ensure_dirs()
        suffix = PurePosixPath(upload.filename or "").suffix.lower()
        name = f"{uuid.uuid4().hex}{suffix}"
        target = self.root / kind / name
        written = 0
        with target.open("wb") as out:
            while chunk := upload.file.read(1024 * 1024):
                written += len(chunk)
                if written > self.max_bytes:
                    break
                out.write(chunk)
        if written > self.max_bytes:
            target.unlink(missing_ok=True)
            raise ValidationError("Uploaded file is too large")
        logger.info("Stored upload %s (%d bytes)", target, written)
        return f"{URL_PREFIX}/{kind}/{name}"

    def resolve(self, url_path: str | None) -> Path | None:
        """Map a stored ``/uploads/...`` path to an existing file, or None."""
        if not url_path:
            return None
        parts = PurePosixPath(url_path).parts
        # ("/", "uploads", kind, name)
        if len(parts) != 4 or parts[1] != URL_PREFIX.strip("/") or parts[2] not in (COVERS, BOOKS):
            return None
        path = self.root / parts[2] / Path(parts[3]).name
        return path if path.is_file() else None

    def delete(self, url_path: str | None) -> None:
        path = self.resolve(url_path)
        if path is not None:
            path.unlink(missing_ok=True)
            logger.info("Removed upload %s", path)
