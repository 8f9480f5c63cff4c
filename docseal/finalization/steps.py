from dataclasses import replace

import psycopg

from docseal.audit.recorder import AuditRecorder
from docseal.core.errors import (
    ArtifactExistsError,
    ConflictError,
    DocumentIntegrityError,
    EmailMismatchError,
    NotFoundError,
    SignatureExpiredError,
    StorageError,
)
from docseal.core.hashing import validate_email, verify_email_hash, verify_fingerprint
from docseal.core.models import (
    PDF_CONTENT_TYPE,
    ActorKind,
    AuditAction,
    AuditLogEntry,
    Document,
    Signature,
)
from docseal.core.requests import parse_id
from docseal.core.status import (
    DocumentEvent,
    DocumentStatus,
    SignatureEvent,
    SignatureStatus,
    next_document_status,
    next_signature_status,
)
from docseal.core.tokens import TokenIssuer
from docseal.database.connection import Database
from docseal.database.repositories.document_repository import DocumentRepository
from docseal.database.repositories.signature_repository import SignatureRepository
from docseal.finalization.pipeline import FinalizeContext, FinalizeStep
from docseal.logging.logger import Log
from docseal.pdf.base import BasePdfStamper
from docseal.storage.base import BaseObjectStorage, signed_path


def check_signable(document: Document, signature: Signature) -> None:
    """Guards shared by the pre-flight check and the commit transaction.

    Raises:
        ConflictError: if the document or signature left the signable state.
    """
    next_document_status(document.status, DocumentEvent.FINALIZED)
    if document.signed_file_path is not None:
        raise ConflictError("Document is already signed")
    next_signature_status(signature.status, SignatureEvent.CONSUMED)
    if signature.document_id != document.id:
        raise ConflictError("Signature does not belong to this document")


class AuthorizeOwnerStep(FinalizeStep):
    """Owner path: the caller owns the document and has a placeholder on it."""

    def __init__(
        self,
        database: Database,
        documents: DocumentRepository,
        signatures: SignatureRepository,
    ) -> None:
        self._database = database
        self._documents = documents
        self._signatures = signatures

    def run(self, context: FinalizeContext) -> FinalizeContext:
        document_id = parse_id(context.document_id, "Document")
        with self._database.connection() as conn:
            document = self._documents.find_owned(conn, context.actor_ref, document_id)
            if document is None:
                raise NotFoundError("Document not found")
            signature = self._signatures.find_internal(conn, document.id, context.actor_ref)
        if signature is None:
            raise NotFoundError("Signature placeholder not found")
        context.document = document
        context.signature = signature
        return context


class AuthorizePublicSignerStep(FinalizeStep):
    """Public path: token resolves to a pending, unexpired signature whose email
    hash matches the address the caller supplied."""

    def __init__(
        self,
        database: Database,
        documents: DocumentRepository,
        signatures: SignatureRepository,
        tokens: TokenIssuer,
    ) -> None:
        self._database = database
        self._documents = documents
        self._signatures = signatures
        self._tokens = tokens

    def run(self, context: FinalizeContext) -> FinalizeContext:
        email = validate_email(context.signer_email)
        if not context.actor_ref:
            raise NotFoundError("Signature not found")
        with self._database.connection() as conn:
            signature = self._signatures.find_public_by_token(conn, context.actor_ref)
            if signature is None:
                raise NotFoundError("Signature not found")
            document = self._documents.find_by_id(conn, signature.document_id)
        if document is None:
            raise NotFoundError("Document not found")
        if signature.signer_email_hash is None or not verify_email_hash(
            email, signature.signer_email_hash
        ):
            raise EmailMismatchError("Email does not match intended signer")
        if signature.status is not SignatureStatus.PENDING:
            raise ConflictError("Signature is already consumed")
        if signature.is_expired(self._tokens.now()):
            raise SignatureExpiredError("Signature has expired")
        context.document = document
        context.signature = signature
        return context


class GuardStateStep(FinalizeStep):
    def run(self, context: FinalizeContext) -> FinalizeContext:
        document, signature = context.require_target()
        check_signable(document, signature)
        return context


class FetchOriginalStep(FinalizeStep):
    def __init__(self, storage: BaseObjectStorage) -> None:
        self._storage = storage

    def run(self, context: FinalizeContext) -> FinalizeContext:
        document, _signature = context.require_target()
        context.original_bytes = self._storage.get(document.original_file_path)
        Log.info(f"Loaded {len(context.original_bytes)} bytes for document {document.id}")
        return context


class VerifyIntegrityStep(FinalizeStep):
    def run(self, context: FinalizeContext) -> FinalizeContext:
        document, _signature = context.require_target()
        if not verify_fingerprint(context.original_bytes, document.file_hash):
            Log.critical(
                f"Fingerprint mismatch on document {document.id}",
                expected=document.file_hash,
            )
            raise DocumentIntegrityError("Document has been modified")
        return context


class StampStep(FinalizeStep):
    def __init__(self, stamper: BasePdfStamper) -> None:
        self._stamper = stamper

    def run(self, context: FinalizeContext) -> FinalizeContext:
        document, signature = context.require_target()
        context.stamped_bytes = self._stamper.stamp(
            context.original_bytes,
            signature.page_number,
            signature.x_percent,
            signature.y_percent,
        )
        Log.info(
            f"Stamped document {document.id}",
            page=signature.page_number,
            x_percent=signature.x_percent,
            y_percent=signature.y_percent,
        )
        return context


class PromoteArtifactStep(FinalizeStep):
    """Write-once upload of the stamped bytes.

    Runs inside the commit transaction with the document row locked and the
    signable state re-checked. Under that lock an existing artifact can only
    be left over from an attempt that died before committing, so it is
    reclaimed and the put is retried once.
    """

    def __init__(self, storage: BaseObjectStorage) -> None:
        self._storage = storage

    def run(self, context: FinalizeContext) -> FinalizeContext:
        document, _signature = context.require_target()
        path = signed_path(document.id)
        try:
            context.signed_path = self._put(path, context.stamped_bytes)
        except ArtifactExistsError:
            Log.warning(f"Reclaiming uncommitted artifact {path}", document_id=document.id)
            self._storage.delete(path)
            context.signed_path = self._put(path, context.stamped_bytes)
        context.promoted = True
        return context

    def _put(self, path: str, data: bytes) -> str:
        return self._storage.put(path, data, PDF_CONTENT_TYPE, overwrite=False)


class CommitStep(FinalizeStep):
    """Lock document then signature, promote the artifact and flip both rows
    to signed in one transaction."""

    def __init__(
        self,
        database: Database,
        documents: DocumentRepository,
        signatures: SignatureRepository,
        tokens: TokenIssuer,
        promote: PromoteArtifactStep,
    ) -> None:
        self._database = database
        self._documents = documents
        self._signatures = signatures
        self._tokens = tokens
        self._promote = promote

    def run(self, context: FinalizeContext) -> FinalizeContext:
        document, signature = context.require_target()

        with self._database.transaction() as conn:
            current_document = self._documents.find_by_id(conn, document.id, for_update=True)
            if current_document is None:
                raise NotFoundError("Document not found")
            current_signature = self._signatures.find_by_id(
                conn, signature.id, for_update=True
            )
            if current_signature is None:
                raise ConflictError("Signature placeholder was deleted")
            check_signable(current_document, current_signature)
            context = self._promote.run(context)
            if context.signed_path is None:
                raise ValueError("FinalizeContext.signed_path must be set by promotion")
            signed_at = self._tokens.now()
            self._documents.mark_signed(conn, current_document.id, context.signed_path)
            self._signatures.mark_signed(conn, current_signature.id, signed_at)

        context.document = replace(
            current_document,
            status=DocumentStatus.SIGNED,
            signed_file_path=context.signed_path,
        )
        context.signature = replace(
            current_signature, status=SignatureStatus.SIGNED, signed_at=signed_at
        )
        context.committed = True
        Log.info(f"Document {document.id} signed", signature_id=signature.id)
        return context


class AuditStep(FinalizeStep):
    _ACTIONS = {
        ActorKind.INTERNAL: AuditAction.DOCUMENT_SIGNED_INTERNAL,
        ActorKind.PUBLIC: AuditAction.DOCUMENT_SIGNED_PUBLIC,
    }

    def __init__(self, audit: AuditRecorder) -> None:
        self._audit = audit

    def run(self, context: FinalizeContext) -> FinalizeContext:
        document, _signature = context.require_target()
        self._audit.record(
            AuditLogEntry(
                document_id=document.id,
                actor_kind=context.actor_kind,
                actor_ref=context.actor_ref,
                action=self._ACTIONS[context.actor_kind],
                ip_address=context.ip_address,
            )
        )
        return context


class CompensatePromotionStep(FinalizeStep):
    """Runs after a failed or interrupted attempt: removes an artifact this
    attempt promoted but never committed, so a later finalize can promote again.

    The document row is locked first; a document that is signed by now owns
    the artifact and it is left alone. Failures here are logged only, the next
    finalize or delete reclaims the object.
    """

    def __init__(
        self,
        database: Database,
        documents: DocumentRepository,
        storage: BaseObjectStorage,
    ) -> None:
        self._database = database
        self._documents = documents
        self._storage = storage

    def run(self, context: FinalizeContext) -> FinalizeContext:
        if not context.promoted or context.committed or context.signed_path is None:
            return context
        document, _signature = context.require_target()
        try:
            with self._database.transaction() as conn:
                current = self._documents.find_by_id(conn, document.id, for_update=True)
                if current is not None and current.signed_file_path is not None:
                    Log.warning(f"Artifact {context.signed_path} was committed, keeping it")
                    return context
                self._storage.delete(context.signed_path)
            context.promoted = False
            Log.warning(f"Removed uncommitted artifact {context.signed_path}")
        except (StorageError, psycopg.Error) as exc:
            Log.error(
                f"Could not remove uncommitted artifact {context.signed_path}",
                error=str(exc),
            )
        return context
