from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from docseal.core.status import DocumentStatus, SignatureStatus

PDF_CONTENT_TYPE = "application/pdf"


class SignerKind(str, Enum):
    INTERNAL = "internal"
    PUBLIC = "public"


class ActorKind(str, Enum):
    INTERNAL = "internal"
    PUBLIC = "public"
    SYSTEM = "system"


class ArtifactKind(str, Enum):
    ORIGINAL = "original"
    SIGNED = "signed"


class AuditAction(str, Enum):
    DOCUMENT_UPLOADED = "DOCUMENT_UPLOADED"
    SIGNATURE_PLACEHOLDER_CREATED = "SIGNATURE_PLACEHOLDER_CREATED"
    PUBLIC_SIGNATURE_LINK_CREATED = "PUBLIC_SIGNATURE_LINK_CREATED"
    DOCUMENT_SIGNED_INTERNAL = "DOCUMENT_SIGNED_INTERNAL"
    DOCUMENT_SIGNED_PUBLIC = "DOCUMENT_SIGNED_PUBLIC"
    SIGNATURE_PLACEHOLDER_DELETED = "SIGNATURE_PLACEHOLDER_DELETED"
    DOCUMENT_DELETED = "DOCUMENT_DELETED"
    ORIGINAL_DOCUMENT_DOWNLOADED = "ORIGINAL_DOCUMENT_DOWNLOADED"
    SIGNED_DOCUMENT_DOWNLOADED = "SIGNED_DOCUMENT_DOWNLOADED"


@dataclass(frozen=True)
class Document:
    """Domain model for a row of the documents table."""

    id: str
    owner_id: str
    title: str
    original_file_path: str
    file_hash: str
    page_count: int
    status: DocumentStatus
    created_at: datetime | None = None
    signed_file_path: str | None = None

    def __post_init__(self) -> None:
        is_signed = self.status is DocumentStatus.SIGNED
        if is_signed != (self.signed_file_path is not None):
            raise ValueError(
                f"Document {self.id}: signed artifact must exist iff status is signed"
            )


@dataclass(frozen=True)
class Signature:
    """Domain model for a row of the signatures table."""

    id: str
    document_id: str
    signer_kind: SignerKind
    signer_ref: str
    page_number: int
    x_percent: float
    y_percent: float
    status: SignatureStatus
    created_at: datetime | None = None
    expires_at: datetime | None = None
    signer_email_hash: str | None = None
    signer_email_hint: str | None = None
    signed_at: datetime | None = None

    @property
    def is_public(self) -> bool:
        return self.signer_kind is SignerKind.PUBLIC

    def is_expired(self, now: datetime) -> bool:
        """Internal signatures never expire."""
        return self.expires_at is not None and now >= self.expires_at


@dataclass(frozen=True)
class AuditLogEntry:
    """Single append-only audit record."""

    document_id: str
    actor_kind: ActorKind
    actor_ref: str
    action: AuditAction
    ip_address: str | None = None
    id: int | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class PublicSignatureLink:
    """Result of placing a public signature: the record plus its shareable link."""

    signature: Signature
    token: str
    url: str


@dataclass(frozen=True)
class PublicSignatureView:
    """What a public signer may see. Never carries the plaintext email."""

    signature_id: str
    document_id: str
    document_title: str
    status: SignatureStatus
    page_number: int
    x_percent: float
    y_percent: float
    expires_at: datetime | None
    email_hint: str | None
    email_verified: bool


@dataclass(frozen=True)
class DocumentFile:
    """Downloaded artifact bytes with the filename presented to the caller."""

    filename: str
    content: bytes
    content_type: str = PDF_CONTENT_TYPE


@dataclass(frozen=True)
class FinalizedDocument:
    """State committed by a successful finalize."""

    document: Document
    signature: Signature
