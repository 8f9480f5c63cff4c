from collections.abc import Callable
from datetime import timedelta
from typing import TypeVar

import psycopg

from docseal.audit.recorder import AuditRecorder
from docseal.config.settings import Settings
from docseal.core.errors import ErrorKind, NotFoundError, SigningError
from docseal.core.models import (
    PDF_CONTENT_TYPE,
    ArtifactKind,
    AuditLogEntry,
    Document,
    DocumentFile,
    FinalizedDocument,
    PublicSignatureLink,
    PublicSignatureView,
    Signature,
)
from docseal.core.result import Result
from docseal.core.tokens import TokenIssuer
from docseal.database.connection import Database
from docseal.database.repositories.audit_log_repository import AuditLogRepository
from docseal.database.repositories.document_repository import DocumentRepository
from docseal.database.repositories.signature_repository import SignatureRepository
from docseal.documents.manager import DocumentManager
from docseal.finalization.protocol import FinalizationProtocol, build_finalization_protocol
from docseal.logging.logger import Log
from docseal.pdf.factory import PdfInspectorFactory, PdfStamperFactory
from docseal.signatures.manager import SignatureManager
from docseal.storage.local_adapter import LocalObjectStorage

T = TypeVar("T")

_DEPENDENCY_MESSAGE = "Service temporarily unavailable"


class SigningService:
    """Operations exposed to callers. Every method returns a ``Result``;
    nothing raised by the managers escapes."""

    def __init__(
        self,
        documents: DocumentManager,
        signatures: SignatureManager,
        finalization: FinalizationProtocol,
        audit: AuditRecorder,
    ) -> None:
        self._documents = documents
        self._signatures = signatures
        self._finalization = finalization
        self._audit = audit

    # Documents

    def upload(
        self,
        owner_id: str,
        title: str,
        content: bytes,
        content_type: str = PDF_CONTENT_TYPE,
        ip_address: str | None = None,
    ) -> Result[Document]:
        return self._run(
            "upload",
            lambda: self._documents.upload(owner_id, title, content, content_type, ip_address),
        )

    def list_documents(self, owner_id: str) -> Result[list[Document]]:
        return self._run("list_documents", lambda: self._documents.list_documents(owner_id))

    def get_document(self, owner_id: str, document_id: str) -> Result[Document]:
        return self._run("get_document", lambda: self._documents.get(owner_id, document_id))

    def delete_document(
        self, owner_id: str, document_id: str, ip_address: str | None = None
    ) -> Result[None]:
        return self._run(
            "delete_document",
            lambda: self._documents.delete(owner_id, document_id, ip_address),
        )

    def download_original(
        self,
        owner_id: str,
        document_id: str,
        preview: bool = False,
        ip_address: str | None = None,
    ) -> Result[DocumentFile]:
        return self._run(
            "download_original",
            lambda: self._documents.download_original(
                owner_id, document_id, preview=preview, ip_address=ip_address
            ),
        )

    def download_signed(
        self,
        owner_id: str,
        document_id: str,
        preview: bool = False,
        ip_address: str | None = None,
    ) -> Result[DocumentFile]:
        return self._run(
            "download_signed",
            lambda: self._documents.download_signed(
                owner_id, document_id, preview=preview, ip_address=ip_address
            ),
        )

    # Signatures

    def place_internal_signature(
        self,
        owner_id: str,
        document_id: str,
        page_number: int,
        x_percent: float,
        y_percent: float,
        ip_address: str | None = None,
    ) -> Result[Signature]:
        return self._run(
            "place_internal_signature",
            lambda: self._signatures.place_internal(
                owner_id, document_id, page_number, x_percent, y_percent, ip_address
            ),
        )

    def place_public_signature(
        self,
        owner_id: str,
        document_id: str,
        page_number: int,
        x_percent: float,
        y_percent: float,
        signer_email: str,
        ip_address: str | None = None,
    ) -> Result[PublicSignatureLink]:
        return self._run(
            "place_public_signature",
            lambda: self._signatures.place_public(
                owner_id,
                document_id,
                page_number,
                x_percent,
                y_percent,
                signer_email,
                ip_address,
            ),
        )

    def list_signatures(self, owner_id: str, document_id: str) -> Result[list[Signature]]:
        return self._run(
            "list_signatures",
            lambda: self._signatures.list_for_document(owner_id, document_id),
        )

    def delete_signature(
        self, owner_id: str, signature_id: str, ip_address: str | None = None
    ) -> Result[None]:
        return self._run(
            "delete_signature",
            lambda: self._signatures.delete(owner_id, signature_id, ip_address),
        )

    def get_public_signature(
        self, token: str, email: str | None = None
    ) -> Result[PublicSignatureView]:
        return self._run(
            "get_public_signature", lambda: self._signatures.fetch_public(token, email)
        )

    def download_public_document(
        self,
        token: str,
        email: str,
        kind: ArtifactKind = ArtifactKind.ORIGINAL,
        preview: bool = False,
        ip_address: str | None = None,
    ) -> Result[DocumentFile]:
        return self._run(
            "download_public_document",
            lambda: self._signatures.download_for_public(
                token, email, kind, preview=preview, ip_address=ip_address
            ),
        )

    # Finalization

    def finalize_internal(
        self, owner_id: str, document_id: str, ip_address: str | None = None
    ) -> Result[FinalizedDocument]:
        return self._run(
            "finalize_internal",
            lambda: self._finalization.finalize_internal(owner_id, document_id, ip_address),
        )

    def finalize_public(
        self, token: str, email: str, ip_address: str | None = None
    ) -> Result[FinalizedDocument]:
        return self._run(
            "finalize_public",
            lambda: self._finalization.finalize_public(token, email, ip_address),
        )

    # Audit

    def list_audit_log(
        self,
        owner_id: str,
        document_id: str,
        limit: int | None = None,
        offset: int = 0,
    ) -> Result[list[AuditLogEntry]]:
        """Audit history of one of the caller's documents, newest first."""

        def _list() -> list[AuditLogEntry]:
            document = self._documents.get(owner_id, document_id)
            return self._audit.list_for(document.id, limit, offset)

        return self._run("list_audit_log", _list)

    def _run(self, operation: str, call: Callable[[], T]) -> Result[T]:
        try:
            return Result.success(call())
        except NotFoundError as exc:
            Log.debug(f"{operation}: {exc.message}")
            return Result.failed(exc.kind, exc.message)
        except SigningError as exc:
            Log.warning(f"{operation} rejected: {exc.message}", kind=exc.kind.value)
            return Result.failed(exc.kind, exc.message)
        except psycopg.Error as exc:
            Log.error(f"{operation} failed on the database", error=repr(exc))
            return Result.failed(ErrorKind.DEPENDENCY, _DEPENDENCY_MESSAGE)


def build_service(settings: Settings, database: Database) -> SigningService:
    """Wire repositories, adapters and managers from settings."""
    document_repo = DocumentRepository()
    signature_repo = SignatureRepository()
    audit = AuditRecorder(
        database,
        AuditLogRepository(),
        alarm_threshold=settings.audit_failure_alarm_threshold,
    )
    storage = LocalObjectStorage(settings.storage_root)
    tokens = TokenIssuer(ttl=timedelta(hours=settings.public_link_ttl_hours))

    documents = DocumentManager(
        database,
        document_repo,
        storage,
        PdfInspectorFactory.create(settings),
        audit,
        settings.max_upload_bytes,
    )
    signatures = SignatureManager(
        database,
        documents,
        document_repo,
        signature_repo,
        storage,
        tokens,
        audit,
        settings.public_link_base_url,
    )
    finalization = build_finalization_protocol(
        database,
        document_repo,
        signature_repo,
        storage,
        PdfStamperFactory.create(settings),
        tokens,
        audit,
    )
    return SigningService(documents, signatures, finalization, audit)
