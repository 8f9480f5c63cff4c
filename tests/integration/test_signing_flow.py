from pathlib import Path

import psycopg
import pytest

from docseal.core.errors import ErrorKind
from docseal.core.hashing import fingerprint
from docseal.core.models import ArtifactKind, AuditAction
from docseal.core.status import DocumentStatus, SignatureStatus
from docseal.database.connection import Database
from docseal.service import SigningService
from docseal.storage.base import original_path, signed_path


def _chronological(service: SigningService, owner_id: str, document_id: str) -> list[AuditAction]:
    entries = service.list_audit_log(owner_id, document_id).unwrap()
    return [entry.action for entry in reversed(entries)]


@pytest.mark.integration
class TestInternalSigning:
    def test_upload_place_finalize(
        self,
        service: SigningService,
        owner_id: str,
        files_root: Path,
        multi_page_pdf_bytes: bytes,
    ) -> None:
        document = service.upload(owner_id, "Contract", multi_page_pdf_bytes).unwrap()
        assert document.status is DocumentStatus.PENDING
        assert document.page_count == 3
        assert (files_root / original_path(document.id)).read_bytes() == multi_page_pdf_bytes

        signature = service.place_internal_signature(owner_id, document.id, 3, 60.0, 85.0).unwrap()
        assert signature.status is SignatureStatus.PENDING
        assert service.get_document(owner_id, document.id).unwrap().status is (
            DocumentStatus.READY_TO_SIGN
        )

        finalized = service.finalize_internal(owner_id, document.id).unwrap()
        assert finalized.document.status is DocumentStatus.SIGNED
        assert finalized.signature.status is SignatureStatus.SIGNED

        stored = service.get_document(owner_id, document.id).unwrap()
        assert stored.status is DocumentStatus.SIGNED
        assert stored.signed_file_path == signed_path(document.id)
        signed = service.download_signed(owner_id, document.id).unwrap()
        assert signed.filename == "Contract_signed.pdf"
        assert signed.content == (files_root / signed_path(document.id)).read_bytes()
        assert fingerprint(
            service.download_original(owner_id, document.id, preview=True).unwrap().content
        ) == document.file_hash

        assert _chronological(service, owner_id, document.id) == [
            AuditAction.DOCUMENT_UPLOADED,
            AuditAction.SIGNATURE_PLACEHOLDER_CREATED,
            AuditAction.DOCUMENT_SIGNED_INTERNAL,
            AuditAction.SIGNED_DOCUMENT_DOWNLOADED,
        ]

        again = service.finalize_internal(owner_id, document.id)
        assert again.failure is not None
        assert again.failure.kind is ErrorKind.CONFLICT

    def test_duplicate_upload_is_conflict(
        self, service: SigningService, owner_id: str, sample_pdf_bytes: bytes
    ) -> None:
        service.upload(owner_id, "Contract", sample_pdf_bytes).unwrap()

        result = service.upload(owner_id, "Contract copy", sample_pdf_bytes)

        assert result.failure is not None
        assert result.failure.kind is ErrorKind.CONFLICT

    def test_documents_are_owner_scoped(
        self, service: SigningService, owner_id: str, sample_pdf_bytes: bytes
    ) -> None:
        document = service.upload(owner_id, "Contract", sample_pdf_bytes).unwrap()

        result = service.get_document("someone-else", document.id)

        assert result.failure is not None
        assert result.failure.kind is ErrorKind.NOT_FOUND
        assert [d.id for d in service.list_documents(owner_id).unwrap()] == [document.id]

    def test_page_beyond_document_is_rejected(
        self, service: SigningService, owner_id: str, sample_pdf_bytes: bytes
    ) -> None:
        document = service.upload(owner_id, "Contract", sample_pdf_bytes).unwrap()

        result = service.place_internal_signature(owner_id, document.id, 2, 50.0, 50.0)

        assert result.failure is not None
        assert result.failure.kind is ErrorKind.VALIDATION

    def test_deleting_placeholder_reverts_to_pending(
        self, service: SigningService, owner_id: str, sample_pdf_bytes: bytes
    ) -> None:
        document = service.upload(owner_id, "Contract", sample_pdf_bytes).unwrap()
        signature = service.place_internal_signature(owner_id, document.id, 1, 50.0, 50.0).unwrap()

        service.delete_signature(owner_id, signature.id).unwrap()

        assert service.get_document(owner_id, document.id).unwrap().status is (
            DocumentStatus.PENDING
        )
        assert service.list_signatures(owner_id, document.id).unwrap() == []

    def test_signed_signature_cannot_be_deleted(
        self, service: SigningService, owner_id: str, sample_pdf_bytes: bytes
    ) -> None:
        document = service.upload(owner_id, "Contract", sample_pdf_bytes).unwrap()
        signature = service.place_internal_signature(owner_id, document.id, 1, 50.0, 50.0).unwrap()
        service.finalize_internal(owner_id, document.id).unwrap()

        result = service.delete_signature(owner_id, signature.id)

        assert result.failure is not None
        assert result.failure.kind is ErrorKind.CONFLICT
        assert service.list_signatures(owner_id, document.id).unwrap()[0].status is (
            SignatureStatus.SIGNED
        )

    def test_delete_document_removes_rows_and_artifacts(
        self,
        service: SigningService,
        owner_id: str,
        files_root: Path,
        sample_pdf_bytes: bytes,
    ) -> None:
        document = service.upload(owner_id, "Contract", sample_pdf_bytes).unwrap()
        service.place_internal_signature(owner_id, document.id, 1, 50.0, 50.0).unwrap()
        service.finalize_internal(owner_id, document.id).unwrap()

        service.delete_document(owner_id, document.id).unwrap()

        assert not (files_root / original_path(document.id)).exists()
        assert not (files_root / signed_path(document.id)).exists()
        missing = service.get_document(owner_id, document.id)
        assert missing.failure is not None
        assert missing.failure.kind is ErrorKind.NOT_FOUND
        again = service.delete_document(owner_id, document.id)
        assert again.failure is not None
        assert again.failure.kind is ErrorKind.NOT_FOUND


@pytest.mark.integration
class TestPublicSigning:
    def test_public_link_flow(
        self, service: SigningService, owner_id: str, sample_pdf_bytes: bytes
    ) -> None:
        document = service.upload(owner_id, "NDA", sample_pdf_bytes).unwrap()
        link = service.place_public_signature(
            owner_id, document.id, 1, 40.0, 70.0, "Signer@Example.com"
        ).unwrap()
        assert link.url.endswith(f"/{link.token}")

        view = service.get_public_signature(link.token).unwrap()
        assert view.email_hint == "s***r@example.com"
        assert view.email_verified is False

        wrong = service.finalize_public(link.token, "intruder@example.com")
        assert wrong.failure is not None
        assert wrong.failure.kind is ErrorKind.FORBIDDEN

        original = service.download_public_document(
            link.token, "signer@example.com", ArtifactKind.ORIGINAL
        ).unwrap()
        assert original.content == sample_pdf_bytes

        finalized = service.finalize_public(link.token, "signer@example.com").unwrap()
        assert finalized.document.status is DocumentStatus.SIGNED

        again = service.finalize_public(link.token, "signer@example.com")
        assert again.failure is not None
        assert again.failure.kind is ErrorKind.CONFLICT

        signed = service.download_public_document(
            link.token, "signer@example.com", ArtifactKind.SIGNED
        ).unwrap()
        assert signed.content == service.download_signed(
            owner_id, document.id, preview=True
        ).unwrap().content

        actions = _chronological(service, owner_id, document.id)
        assert actions == [
            AuditAction.DOCUMENT_UPLOADED,
            AuditAction.PUBLIC_SIGNATURE_LINK_CREATED,
            AuditAction.ORIGINAL_DOCUMENT_DOWNLOADED,
            AuditAction.DOCUMENT_SIGNED_PUBLIC,
            AuditAction.SIGNED_DOCUMENT_DOWNLOADED,
        ]

    def test_expired_link(
        self,
        service: SigningService,
        database: Database,
        owner_id: str,
        sample_pdf_bytes: bytes,
    ) -> None:
        document = service.upload(owner_id, "NDA", sample_pdf_bytes).unwrap()
        link = service.place_public_signature(
            owner_id, document.id, 1, 40.0, 70.0, "signer@example.com"
        ).unwrap()
        with database.transaction() as conn:
            conn.execute(
                "UPDATE signatures SET expires_at = NOW() - INTERVAL '1 minute' WHERE id = %s",
                (link.signature.id,),
            )

        result = service.finalize_public(link.token, "signer@example.com")

        assert result.failure is not None
        assert result.failure.kind is ErrorKind.EXPIRED
        assert service.get_document(owner_id, document.id).unwrap().status is (
            DocumentStatus.READY_TO_SIGN
        )

    def test_unknown_token(self, service: SigningService, database: Database) -> None:
        result = service.get_public_signature("no-such-token")

        assert result.failure is not None
        assert result.failure.kind is ErrorKind.NOT_FOUND


@pytest.mark.integration
class TestAuditTrail:
    def test_audit_rows_cannot_be_modified(
        self,
        service: SigningService,
        database: Database,
        owner_id: str,
        sample_pdf_bytes: bytes,
    ) -> None:
        document = service.upload(owner_id, "Contract", sample_pdf_bytes).unwrap()

        with pytest.raises(psycopg.Error, match="append-only"):
            with database.transaction() as conn:
                conn.execute(
                    "UPDATE audit_logs SET action = 'TAMPERED' WHERE document_id = %s",
                    (document.id,),
                )

    def test_paging(
        self, service: SigningService, owner_id: str, sample_pdf_bytes: bytes
    ) -> None:
        document = service.upload(owner_id, "Contract", sample_pdf_bytes).unwrap()
        service.place_internal_signature(owner_id, document.id, 1, 50.0, 50.0).unwrap()

        newest = service.list_audit_log(owner_id, document.id, limit=1).unwrap()
        older = service.list_audit_log(owner_id, document.id, limit=1, offset=1).unwrap()

        assert [e.action for e in newest] == [AuditAction.SIGNATURE_PLACEHOLDER_CREATED]
        assert [e.action for e in older] == [AuditAction.DOCUMENT_UPLOADED]
