"""Typed errors raised by the store and services; mapped to HTTP in app.main."""


class LibraryError(Exception):
    """Base for every error the API reports as ``{"message": ...}``."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LibraryError):
    status_code = 400


class UnauthorizedError(LibraryError):
    status_code = 401


class ForbiddenError(LibraryError):
    status_code = 403


class NotFoundError(LibraryError):
    status_code = 404


class ConflictError(LibraryError):
    status_code = 409


class UnexpectedError(LibraryError):
    """Storage or other internal failure. The message is never sent to clients."""

    status_code = 500
