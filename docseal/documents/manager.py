import uuid
from dataclasses import replace
from typing import Any

import psycopg

from docseal.audit.recorder import AuditRecorder
from docseal.core.errors import ConflictError, NotFoundError, StorageError, ValidationError
from docseal.core.hashing import fingerprint
from docseal.core.models import (
    PDF_CONTENT_TYPE,
    ActorKind,
    AuditAction,
    AuditLogEntry,
    Document,
    DocumentFile,
)
from docseal.core.requests import UploadRequest, parse_id, parse_request
from docseal.core.status import DocumentEvent, DocumentStatus, next_document_status
from docseal.database.connection import Database
from docseal.database.repositories.document_repository import DocumentRepository
from docseal.logging.logger import Log
from docseal.pdf.base import BasePdfInspector
from docseal.storage.base import BaseObjectStorage, original_path, signed_path

_PDF_MAGIC = b"%PDF-"


class DocumentManager:
    """Enforces who may do what to a document and when."""

    def __init__(
        self,
        database: Database,
        documents: DocumentRepository,
        storage: BaseObjectStorage,
        inspector: BasePdfInspector,
        audit: AuditRecorder,
        max_upload_bytes: int,
    ) -> None:
        self._database = database
        self._documents = documents
        self._storage = storage
        self._inspector = inspector
        self._audit = audit
        self._max_upload_bytes = max_upload_bytes

    def upload(
        self,
        owner_id: str,
        title: str,
        content: bytes,
        content_type: str = PDF_CONTENT_TYPE,
        ip_address: str | None = None,
    ) -> Document:
        """Validate, store and register a new PDF in status pending.

        Raises:
            ValidationError: for a non-PDF, empty or oversize payload or a blank title.
            ConflictError: if the owner already uploaded the same bytes.
        """
        if not content:
            raise ValidationError("File is required")
        request = parse_request(
            UploadRequest,
            title=title,
            content_type=content_type,
            max_size_bytes=self._max_upload_bytes,
            size_bytes=len(content),
        )
        if not content.startswith(_PDF_MAGIC):
            raise ValidationError("Invalid file type, only PDF files are allowed")
        page_count = self._inspector.page_count(content)
        file_hash = fingerprint(content)

        with self._database.connection() as conn:
            if self._documents.find_by_hash(conn, owner_id, file_hash) is not None:
                raise ConflictError("Same document already exists")

        document_id = str(uuid.uuid4())
        path = self._storage.put(
            original_path(document_id), content, request.content_type, overwrite=False
        )
        try:
            with self._database.transaction() as conn:
                document = self._documents.insert(
                    conn,
                    Document(
                        id=document_id,
                        owner_id=owner_id,
                        title=request.title,
                        original_file_path=path,
                        file_hash=file_hash,
                        page_count=page_count,
                        status=DocumentStatus.PENDING,
                    ),
                )
        except Exception:
            self._discard_object(path)
            raise

        Log.info(
            f"Document {document.id} uploaded",
            owner_id=owner_id,
            pages=page_count,
            size_bytes=len(content),
        )
        self._record(document, AuditAction.DOCUMENT_UPLOADED, owner_id, ip_address)
        return document

    def list_documents(self, owner_id: str) -> list[Document]:
        with self._database.connection() as conn:
            return self._documents.list_for_owner(conn, owner_id)

    def get(self, owner_id: str, document_id: str) -> Document:
        """Fetch a document owned by ``owner_id``.

        Raises:
            NotFoundError: if absent, malformed, or owned by someone else.
        """
        document_id = parse_id(document_id, "Document")
        with self._database.connection() as conn:
            return self.require_owned(conn, owner_id, document_id)

    def delete(self, owner_id: str, document_id: str, ip_address: str | None = None) -> None:
        """Remove a document, its signatures and both artifacts.

        Rows are deleted inside a transaction that stays open while the
        artifacts are removed; a storage failure rolls the rows back. The signed
        path is removed even for unsigned documents, which clears an artifact
        left by an interrupted finalize. Every step tolerates a previous
        partial run, so retrying completes it.
        """
        document_id = parse_id(document_id, "Document")
        with self._database.transaction() as conn:
            document = self.require_owned(conn, owner_id, document_id, for_update=True)
            self._documents.delete(conn, document.id)
            self._storage.delete(document.signed_file_path or signed_path(document.id))
            self._storage.delete(document.original_file_path)

        Log.info(f"Document {document.id} deleted", owner_id=owner_id)
        self._record(document, AuditAction.DOCUMENT_DELETED, owner_id, ip_address)

    def download_original(
        self,
        owner_id: str,
        document_id: str,
        *,
        preview: bool = False,
        ip_address: str | None = None,
    ) -> DocumentFile:
        """Return the uploaded bytes. Previews are not audited."""
        document = self.get(owner_id, document_id)
        content = self._storage.get(document.original_file_path)
        if not preview:
            self._record(document, AuditAction.ORIGINAL_DOCUMENT_DOWNLOADED, owner_id, ip_address)
        return DocumentFile(filename=f"{document.title}.pdf", content=content)

    def download_signed(
        self,
        owner_id: str,
        document_id: str,
        *,
        preview: bool = False,
        ip_address: str | None = None,
    ) -> DocumentFile:
        """Return the stamped artifact.

        Raises:
            NotFoundError: if the document is not signed yet.
        """
        document = self.get(owner_id, document_id)
        if document.signed_file_path is None:
            raise NotFoundError("Signed document not found")
        content = self._storage.get(document.signed_file_path)
        if not preview:
            self._record(document, AuditAction.SIGNED_DOCUMENT_DOWNLOADED, owner_id, ip_address)
        return DocumentFile(filename=f"{document.title}_signed.pdf", content=content)

    def require_owned(
        self,
        conn: psycopg.Connection[Any],
        owner_id: str,
        document_id: str,
        *,
        for_update: bool = False,
    ) -> Document:
        document = self._documents.find_owned(
            conn, owner_id, document_id, for_update=for_update
        )
        if document is None:
            raise NotFoundError("Document not found")
        return document

    def mark_ready_to_sign(self, conn: psycopg.Connection[Any], document: Document) -> Document:
        """First placeholder attached: pending -> ready_to_sign."""
        return self._apply(conn, document, DocumentEvent.PLACEHOLDER_ATTACHED)

    def revert_to_pending(self, conn: psycopg.Connection[Any], document: Document) -> Document:
        """Last pending placeholder removed: ready_to_sign -> pending."""
        return self._apply(conn, document, DocumentEvent.PLACEHOLDERS_CLEARED)

    def _apply(
        self, conn: psycopg.Connection[Any], document: Document, event: DocumentEvent
    ) -> Document:
        target = next_document_status(document.status, event)
        self._documents.update_status(conn, document.id, document.status, target)
        Log.info(
            f"Document {document.id} {document.status.value} -> {target.value}",
            event=event.value,
        )
        return replace(document, status=target)

    def _discard_object(self, path: str) -> None:
        try:
            self._storage.delete(path)
        except StorageError as exc:
            Log.error(f"Could not remove orphaned object {path}", error=exc.message)

    def _record(
        self,
        document: Document,
        action: AuditAction,
        owner_id: str,
        ip_address: str | None,
    ) -> None:
        self._audit.record(
            AuditLogEntry(
                document_id=document.id,
                actor_kind=ActorKind.INTERNAL,
                actor_ref=owner_id,
                action=action,
                ip_address=ip_address,
            )
        )
