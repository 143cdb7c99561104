"""Custom exception hierarchy for the Expat Vault service."""

from __future__ import annotations

from fastapi import status


class ApplicationError(Exception):
    """Base application error with HTTP semantics."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "application_error"

    def __init__(self, message: str, *, status_code: int | None = None, code: str | None = None) -> None:
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code
        self.message = message


class NotFoundError(ApplicationError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class NoDocumentsFound(NotFoundError):
    """None of the requested documents is owned by the caller and still live."""

    code = "no_documents_found"


class ValidationError(ApplicationError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"


class UnauthorizedError(ApplicationError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthorized"


class PersistenceError(ApplicationError):
    """A write or read against the row store failed.

    The message is logged server side; clients only ever see the generic
    `public_message`.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "persistence_error"
    public_message = "Internal server error"


class ArchiveStructuralError(RuntimeError):
    """The archive encoder itself failed while a response was streaming.

    Raised from inside the streaming body, after headers have been sent, so
    it can only abort the transport. It is never rendered as JSON.
    """
