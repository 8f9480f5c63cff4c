from typing import Any

import psycopg
from psycopg.rows import dict_row

from docseal.core.errors import ConflictError
from docseal.core.models import Document
from docseal.core.status import DocumentStatus

_COLUMNS = (
    "id, owner_id, title, original_file_path, signed_file_path, "
    "file_hash, page_count, status, created_at"
)


class DocumentRepository:
    """Database operations for the documents table.

    Every method takes the caller's connection so that reads, guards and
    writes can share one transaction.
    """

    def insert(self, conn: psycopg.Connection[Any], document: Document) -> Document:
        """Insert a new document row.

        Raises:
            ConflictError: if the owner already uploaded identical content.
        """
        try:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO documents
                    (id, owner_id, title, original_file_path, file_hash, page_count, status)
                    VALUES (%s, %s, %s, %s, %s, %s, %s)
                    RETURNING {_COLUMNS}
                    """,
                    (
                        document.id,
                        document.owner_id,
                        document.title,
                        document.original_file_path,
                        document.file_hash,
                        document.page_count,
                        document.status.value,
                    ),
                )
                row = cur.fetchone()
        except psycopg.errors.UniqueViolation as exc:
            raise ConflictError("Same document already exists") from exc
        assert row is not None
        return self._row_to_document(row)

    def find_owned(
        self,
        conn: psycopg.Connection[Any],
        owner_id: str,
        document_id: str,
        *,
        for_update: bool = False,
    ) -> Document | None:
        """Find a document scoped to its owner; optionally lock the row."""
        lock = " FOR UPDATE" if for_update else ""
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"SELECT {_COLUMNS} FROM documents WHERE id = %s AND owner_id = %s{lock}",
                (document_id, owner_id),
            )
            row = cur.fetchone()
        return None if row is None else self._row_to_document(row)

    def find_by_id(
        self,
        conn: psycopg.Connection[Any],
        document_id: str,
        *,
        for_update: bool = False,
    ) -> Document | None:
        """Find a document without an ownership filter (public signer paths)."""
        lock = " FOR UPDATE" if for_update else ""
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"SELECT {_COLUMNS} FROM documents WHERE id = %s{lock}",
                (document_id,),
            )
            row = cur.fetchone()
        return None if row is None else self._row_to_document(row)

    def find_by_hash(
        self, conn: psycopg.Connection[Any], owner_id: str, file_hash: str
    ) -> Document | None:
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"SELECT {_COLUMNS} FROM documents WHERE owner_id = %s AND file_hash = %s",
                (owner_id, file_hash),
            )
            row = cur.fetchone()
        return None if row is None else self._row_to_document(row)

    def list_for_owner(self, conn: psycopg.Connection[Any], owner_id: str) -> list[Document]:
        """All documents of an owner, newest first."""
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM documents
                WHERE owner_id = %s
                ORDER BY created_at DESC, id
                """,
                (owner_id,),
            )
            rows = cur.fetchall()
        return [self._row_to_document(row) for row in rows]

    def update_status(
        self,
        conn: psycopg.Connection[Any],
        document_id: str,
        expected: DocumentStatus,
        status: DocumentStatus,
    ) -> None:
        """Move a document from ``expected`` to ``status``.

        Raises:
            ConflictError: if the row is no longer in ``expected``.
        """
        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE documents
                SET status = %s
                WHERE id = %s AND status = %s
                """,
                (status.value, document_id, expected.value),
            )
            if cur.rowcount == 0:
                raise ConflictError(f"Document {document_id} is no longer {expected.value}")

    def mark_signed(
        self, conn: psycopg.Connection[Any], document_id: str, signed_file_path: str
    ) -> None:
        """Record the promoted artifact and flip the document to signed.

        Raises:
            ConflictError: if the document is not ready to sign or already has
                a signed artifact.
        """
        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE documents
                SET status = 'signed', signed_file_path = %s
                WHERE id = %s
                  AND status = 'ready_to_sign'
                  AND signed_file_path IS NULL
                """,
                (signed_file_path, document_id),
            )
            if cur.rowcount == 0:
                raise ConflictError("Document is already signed")

    def delete(self, conn: psycopg.Connection[Any], document_id: str) -> None:
        """Delete a document row; its signatures cascade."""
        with conn.cursor() as cur:
            cur.execute("DELETE FROM documents WHERE id = %s", (document_id,))
            if cur.rowcount == 0:
                raise ConflictError(f"Document {document_id} was already deleted")

    @staticmethod
    def _row_to_document(row: dict[str, Any]) -> Document:
        return Document(
            id=str(row["id"]),
            owner_id=row["owner_id"],
            title=row["title"],
            original_file_path=row["original_file_path"],
            signed_file_path=row["signed_file_path"],
            file_hash=row["file_hash"],
            page_count=row["page_count"],
            status=DocumentStatus(row["status"]),
            created_at=row["created_at"],
        )
