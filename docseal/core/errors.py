from enum import Enum
from typing import ClassVar


class ErrorKind(str, Enum):
    """Stable error categories reported across the service boundary."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    FORBIDDEN = "forbidden"
    EXPIRED = "expired"
    INTEGRITY = "integrity"
    DEPENDENCY = "dependency"
    AUDIT_FAILURE = "audit_failure"


class SigningError(Exception):
    """Base exception for all signing-lifecycle errors."""

    kind: ClassVar[ErrorKind] = ErrorKind.DEPENDENCY

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(SigningError):
    """Raised for malformed input, before any storage or datastore access."""

    kind = ErrorKind.VALIDATION


class NotFoundError(SigningError):
    """Raised when a record is absent or not owned by the caller."""

    kind = ErrorKind.NOT_FOUND


class ConflictError(SigningError):
    """Raised when a record is in the wrong lifecycle state."""

    kind = ErrorKind.CONFLICT


class InvalidTransitionError(ConflictError):
    """Raised when a status transition is not allowed from the current state."""


class ArtifactExistsError(ConflictError):
    """Raised when a write-once storage object already exists."""


class EmailMismatchError(ConflictError):
    """Raised when a public signer's email does not match the stored hash."""

    kind = ErrorKind.FORBIDDEN


class SignatureExpiredError(ConflictError):
    """Raised when a public signature link is used after its expiry."""

    kind = ErrorKind.EXPIRED


class DocumentIntegrityError(SigningError):
    """Raised when the original bytes no longer match the stored fingerprint."""

    kind = ErrorKind.INTEGRITY


class DependencyError(SigningError):
    """Raised when storage, datastore or PDF tooling fails."""

    kind = ErrorKind.DEPENDENCY


class StorageError(DependencyError):
    """Raised when the object storage cannot complete an operation."""


class StorageObjectMissingError(StorageError):
    """Raised when a referenced storage object does not exist."""
