import uuid
from typing import Any

import psycopg

from docseal.audit.recorder import AuditRecorder
from docseal.core.errors import (
    ConflictError,
    EmailMismatchError,
    NotFoundError,
    SignatureExpiredError,
    ValidationError,
)
from docseal.core.hashing import hash_email, mask_email, validate_email, verify_email_hash
from docseal.core.models import (
    ActorKind,
    ArtifactKind,
    AuditAction,
    AuditLogEntry,
    Document,
    DocumentFile,
    PublicSignatureLink,
    PublicSignatureView,
    Signature,
    SignerKind,
)
from docseal.core.requests import (
    PlacementRequest,
    PublicPlacementRequest,
    parse_id,
    parse_request,
)
from docseal.core.status import DocumentStatus, SignatureStatus
from docseal.core.tokens import TokenIssuer
from docseal.database.connection import Database
from docseal.database.repositories.document_repository import DocumentRepository
from docseal.database.repositories.signature_repository import SignatureRepository
from docseal.documents.manager import DocumentManager
from docseal.logging.logger import Log
from docseal.storage.base import BaseObjectStorage


class SignatureManager:
    """Owns signature placeholders: placement, public links, lookup and removal."""

    def __init__(
        self,
        database: Database,
        documents: DocumentManager,
        document_repo: DocumentRepository,
        signatures: SignatureRepository,
        storage: BaseObjectStorage,
        tokens: TokenIssuer,
        audit: AuditRecorder,
        link_base_url: str,
    ) -> None:
        self._database = database
        self._documents = documents
        self._document_repo = document_repo
        self._signatures = signatures
        self._storage = storage
        self._tokens = tokens
        self._audit = audit
        self._link_base_url = link_base_url.rstrip("/")

    # ------------------------------------------------------------------
    # Owner operations
    # ------------------------------------------------------------------

    def place_internal(
        self,
        owner_id: str,
        document_id: str,
        page_number: int,
        x_percent: float,
        y_percent: float,
        ip_address: str | None = None,
    ) -> Signature:
        """Place the owner's own placeholder and move the document to ready_to_sign.

        Raises:
            ValidationError: for an out-of-range page or position.
            NotFoundError: if the document is not the caller's.
            ConflictError: if the document is not pending or the owner already
                has a placeholder on it.
        """
        request = parse_request(
            PlacementRequest,
            page_number=page_number,
            x_percent=x_percent,
            y_percent=y_percent,
        )
        document_id = parse_id(document_id, "Document")

        with self._database.transaction() as conn:
            document = self._lock_placeable(conn, owner_id, document_id, request)
            if self._signatures.find_internal(conn, document.id, owner_id) is not None:
                raise ConflictError("Signature placeholder already exists")
            signature = self._signatures.insert(
                conn,
                Signature(
                    id=str(uuid.uuid4()),
                    document_id=document.id,
                    signer_kind=SignerKind.INTERNAL,
                    signer_ref=owner_id,
                    page_number=request.page_number,
                    x_percent=request.x_percent,
                    y_percent=request.y_percent,
                    status=SignatureStatus.PENDING,
                ),
            )
            self._documents.mark_ready_to_sign(conn, document)

        Log.info(f"Internal placeholder {signature.id} placed", document_id=document.id)
        self._record_owner(
            document.id, AuditAction.SIGNATURE_PLACEHOLDER_CREATED, owner_id, ip_address
        )
        return signature

    def place_public(
        self,
        owner_id: str,
        document_id: str,
        page_number: int,
        x_percent: float,
        y_percent: float,
        signer_email: str,
        ip_address: str | None = None,
    ) -> PublicSignatureLink:
        """Place a placeholder for an external signer and issue their link.

        The plaintext email is not stored: only its hash (for authorization)
        and a masked hint (for display).
        """
        request = parse_request(
            PublicPlacementRequest,
            page_number=page_number,
            x_percent=x_percent,
            y_percent=y_percent,
            signer_email=signer_email,
        )
        document_id = parse_id(document_id, "Document")
        token = self._tokens.issue_token()
        issued_at = self._tokens.now()

        with self._database.transaction() as conn:
            document = self._lock_placeable(conn, owner_id, document_id, request)
            signature = self._signatures.insert(
                conn,
                Signature(
                    id=str(uuid.uuid4()),
                    document_id=document.id,
                    signer_kind=SignerKind.PUBLIC,
                    signer_ref=token,
                    page_number=request.page_number,
                    x_percent=request.x_percent,
                    y_percent=request.y_percent,
                    status=SignatureStatus.PENDING,
                    expires_at=self._tokens.expiry_for(issued_at),
                    signer_email_hash=hash_email(request.signer_email),
                    signer_email_hint=mask_email(request.signer_email),
                ),
            )
            self._documents.mark_ready_to_sign(conn, document)

        Log.info(
            f"Public placeholder {signature.id} placed",
            document_id=document.id,
            expires_at=signature.expires_at,
        )
        self._record_owner(
            document.id, AuditAction.PUBLIC_SIGNATURE_LINK_CREATED, owner_id, ip_address
        )
        return PublicSignatureLink(
            signature=signature, token=token, url=f"{self._link_base_url}/{token}"
        )

    def list_for_document(self, owner_id: str, document_id: str) -> list[Signature]:
        document_id = parse_id(document_id, "Document")
        with self._database.connection() as conn:
            document = self._documents.require_owned(conn, owner_id, document_id)
            return self._signatures.list_for_document(conn, document.id)

    def delete(self, owner_id: str, signature_id: str, ip_address: str | None = None) -> None:
        """Delete a pending placeholder; the document returns to pending once
        no pending placeholder is left.

        Raises:
            NotFoundError: if the signature is absent or not on the caller's document.
            ConflictError: if the signature has already been signed.
        """
        signature_id = parse_id(signature_id, "Signature")

        with self._database.transaction() as conn:
            located = self._signatures.find_owned(conn, owner_id, signature_id)
            if located is None:
                raise NotFoundError("Signature not found")
            # Lock order matches finalization: document first, then signature.
            document = self._documents.require_owned(
                conn, owner_id, located.document_id, for_update=True
            )
            signature = self._signatures.find_by_id(conn, signature_id, for_update=True)
            if signature is None:
                raise NotFoundError("Signature not found")
            if signature.status is SignatureStatus.SIGNED:
                raise ConflictError("Signed signature cannot be deleted")
            self._signatures.delete_pending(conn, signature.id)
            if (
                document.status is DocumentStatus.READY_TO_SIGN
                and self._signatures.count_pending(conn, document.id) == 0
            ):
                self._documents.revert_to_pending(conn, document)

        Log.info(f"Placeholder {signature.id} deleted", document_id=document.id)
        self._record_owner(
            document.id, AuditAction.SIGNATURE_PLACEHOLDER_DELETED, owner_id, ip_address
        )

    # ------------------------------------------------------------------
    # Public signer operations
    # ------------------------------------------------------------------

    def fetch_public(self, token: str, email: str | None = None) -> PublicSignatureView:
        """Resolve a public link.

        Without ``email`` only the masked hint is revealed. With ``email`` the
        address must match the one the owner entered.

        Raises:
            NotFoundError: unknown token.
            EmailMismatchError: ``email`` given and not the intended signer.
            SignatureExpiredError: link still pending but past its expiry.
        """
        with self._database.connection() as conn:
            signature, document = self._resolve_token(conn, token)

        verified = False
        if email is not None:
            self._require_email(signature, email)
            verified = True
        self._require_unexpired(signature)

        return PublicSignatureView(
            signature_id=signature.id,
            document_id=document.id,
            document_title=document.title,
            status=signature.status,
            page_number=signature.page_number,
            x_percent=signature.x_percent,
            y_percent=signature.y_percent,
            expires_at=signature.expires_at,
            email_hint=signature.signer_email_hint,
            email_verified=verified,
        )

    def download_for_public(
        self,
        token: str,
        email: str,
        kind: ArtifactKind,
        *,
        preview: bool = False,
        ip_address: str | None = None,
    ) -> DocumentFile:
        """Let a verified public signer read the original (to sign) or the signed copy.

        Raises:
            ValidationError: malformed email.
            NotFoundError: unknown token, or no signed copy yet.
            EmailMismatchError: not the intended signer.
            ConflictError: original requested after the link was consumed,
                or the document is no longer signable.
            SignatureExpiredError: original requested after expiry.
        """
        validate_email(email)
        with self._database.connection() as conn:
            signature, document = self._resolve_token(conn, token)
        self._require_email(signature, email)

        if kind is ArtifactKind.ORIGINAL:
            self._require_unexpired(signature)
            if signature.status is not SignatureStatus.PENDING:
                raise ConflictError("Signature is already consumed")
            if document.status is DocumentStatus.SIGNED or document.signed_file_path:
                raise ConflictError("Document is already signed")
            path = document.original_file_path
            filename = f"{document.title}.pdf"
            action = AuditAction.ORIGINAL_DOCUMENT_DOWNLOADED
        else:
            if document.signed_file_path is None:
                raise NotFoundError("Signed document version not available yet")
            path = document.signed_file_path
            filename = f"{document.title}_signed.pdf"
            action = AuditAction.SIGNED_DOCUMENT_DOWNLOADED

        content = self._storage.get(path)
        if not preview:
            self._audit.record(
                AuditLogEntry(
                    document_id=document.id,
                    actor_kind=ActorKind.PUBLIC,
                    actor_ref=token,
                    action=action,
                    ip_address=ip_address,
                )
            )
        return DocumentFile(filename=filename, content=content)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _lock_placeable(
        self,
        conn: psycopg.Connection[Any],
        owner_id: str,
        document_id: str,
        request: PlacementRequest,
    ) -> Document:
        document = self._documents.require_owned(conn, owner_id, document_id, for_update=True)
        if document.status is not DocumentStatus.PENDING:
            raise ConflictError("Document is not in pending state")
        if request.page_number > document.page_count:
            raise ValidationError(
                f"Page number must not exceed the document's {document.page_count} pages"
            )
        return document

    def _resolve_token(
        self, conn: psycopg.Connection[Any], token: str
    ) -> tuple[Signature, Document]:
        if not token:
            raise NotFoundError("Signature not found")
        signature = self._signatures.find_public_by_token(conn, token)
        if signature is None:
            raise NotFoundError("Signature not found")
        document = self._document_repo.find_by_id(conn, signature.document_id)
        if document is None:
            raise NotFoundError("Document not found")
        return signature, document

    @staticmethod
    def _require_email(signature: Signature, email: str) -> None:
        if signature.signer_email_hash is None or not verify_email_hash(
            email, signature.signer_email_hash
        ):
            raise EmailMismatchError("Email does not match intended signer")

    def _require_unexpired(self, signature: Signature) -> None:
        if signature.status is SignatureStatus.PENDING and signature.is_expired(
            self._tokens.now()
        ):
            raise SignatureExpiredError("Signature has expired")

    def _record_owner(
        self,
        document_id: str,
        action: AuditAction,
        owner_id: str,
        ip_address: str | None,
    ) -> None:
        self._audit.record(
            AuditLogEntry(
                document_id=document_id,
                actor_kind=ActorKind.INTERNAL,
                actor_ref=owner_id,
                action=action,
                ip_address=ip_address,
            )
        )
