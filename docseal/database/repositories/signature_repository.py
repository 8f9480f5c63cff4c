from datetime import datetime
from typing import Any

import psycopg
from psycopg.rows import dict_row

from docseal.core.errors import ConflictError
from docseal.core.models import Signature, SignerKind
from docseal.core.status import SignatureStatus

_COLUMNS = (
    "s.id, s.document_id, s.signer_type, s.signer_ref, s.page_number, "
    "s.x_percent, s.y_percent, s.status, s.expires_at, s.signer_email_hash, "
    "s.signer_email_hint, s.signed_at, s.created_at"
)


class SignatureRepository:
    """Database operations for the signatures table."""

    def insert(self, conn: psycopg.Connection[Any], signature: Signature) -> Signature:
        """Insert a placeholder.

        Raises:
            ConflictError: if the (document, internal signer) pair or the public
                token already exists.
        """
        try:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO signatures AS s
                    (id, document_id, signer_type, signer_ref, page_number,
                     x_percent, y_percent, status, expires_at,
                     signer_email_hash, signer_email_hint)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                    RETURNING {_COLUMNS}
                    """,
                    (
                        signature.id,
                        signature.document_id,
                        signature.signer_kind.value,
                        signature.signer_ref,
                        signature.page_number,
                        signature.x_percent,
                        signature.y_percent,
                        signature.status.value,
                        signature.expires_at,
                        signature.signer_email_hash,
                        signature.signer_email_hint,
                    ),
                )
                row = cur.fetchone()
        except psycopg.errors.UniqueViolation as exc:
            raise ConflictError("Signature placeholder already exists") from exc
        assert row is not None
        return self._row_to_signature(row)

    def find_by_id(
        self,
        conn: psycopg.Connection[Any],
        signature_id: str,
        *,
        for_update: bool = False,
    ) -> Signature | None:
        lock = " FOR UPDATE" if for_update else ""
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"SELECT {_COLUMNS} FROM signatures s WHERE s.id = %s{lock}",
                (signature_id,),
            )
            row = cur.fetchone()
        return None if row is None else self._row_to_signature(row)

    def find_owned(
        self, conn: psycopg.Connection[Any], owner_id: str, signature_id: str
    ) -> Signature | None:
        """Find a signature whose document belongs to ``owner_id``."""
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM signatures s
                JOIN documents d ON d.id = s.document_id
                WHERE s.id = %s AND d.owner_id = %s
                """,
                (signature_id, owner_id),
            )
            row = cur.fetchone()
        return None if row is None else self._row_to_signature(row)

    def find_internal(
        self,
        conn: psycopg.Connection[Any],
        document_id: str,
        signer_ref: str,
        *,
        for_update: bool = False,
    ) -> Signature | None:
        lock = " FOR UPDATE" if for_update else ""
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM signatures s
                WHERE s.document_id = %s
                  AND s.signer_type = 'internal'
                  AND s.signer_ref = %s{lock}
                """,
                (document_id, signer_ref),
            )
            row = cur.fetchone()
        return None if row is None else self._row_to_signature(row)

    def find_public_by_token(
        self, conn: psycopg.Connection[Any], token: str
    ) -> Signature | None:
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM signatures s
                WHERE s.signer_type = 'public' AND s.signer_ref = %s
                """,
                (token,),
            )
            row = cur.fetchone()
        return None if row is None else self._row_to_signature(row)

    def list_for_document(
        self, conn: psycopg.Connection[Any], document_id: str
    ) -> list[Signature]:
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM signatures s
                WHERE s.document_id = %s
                ORDER BY s.created_at, s.id
                """,
                (document_id,),
            )
            rows = cur.fetchall()
        return [self._row_to_signature(row) for row in rows]

    def count_pending(self, conn: psycopg.Connection[Any], document_id: str) -> int:
        with conn.cursor() as cur:
            cur.execute(
                "SELECT COUNT(*) FROM signatures WHERE document_id = %s AND status = 'pending'",
                (document_id,),
            )
            row = cur.fetchone()
        return 0 if row is None else int(row[0])

    def mark_signed(
        self, conn: psycopg.Connection[Any], signature_id: str, signed_at: datetime
    ) -> None:
        """Consume a pending signature.

        Raises:
            ConflictError: if the signature is gone or already consumed.
        """
        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE signatures
                SET status = 'signed', signed_at = %s
                WHERE id = %s AND status = 'pending'
                """,
                (signed_at, signature_id),
            )
            if cur.rowcount == 0:
                raise ConflictError("Signature is already consumed")

    def delete_pending(self, conn: psycopg.Connection[Any], signature_id: str) -> None:
        """Delete a signature that has not been consumed.

        Raises:
            ConflictError: if the signature is signed or already deleted.
        """
        with conn.cursor() as cur:
            cur.execute(
                "DELETE FROM signatures WHERE id = %s AND status = 'pending'",
                (signature_id,),
            )
            if cur.rowcount == 0:
                raise ConflictError("Signed signature cannot be deleted")

    @staticmethod
    def _row_to_signature(row: dict[str, Any]) -> Signature:
        return Signature(
            id=str(row["id"]),
            document_id=str(row["document_id"]),
            signer_kind=SignerKind(row["signer_type"]),
            signer_ref=row["signer_ref"],
            page_number=row["page_number"],
            x_percent=float(row["x_percent"]),
            y_percent=float(row["y_percent"]),
            status=SignatureStatus(row["status"]),
            expires_at=row["expires_at"],
            signer_email_hash=row["signer_email_hash"],
            signer_email_hint=row["signer_email_hint"],
            signed_at=row["signed_at"],
            created_at=row["created_at"],
        )
