from typing import Any

import psycopg
from psycopg.rows import dict_row

from docseal.core.models import ActorKind, AuditAction, AuditLogEntry


class AuditLogRepository:
    """Insert-and-read access to the audit_logs table. There is no update or delete."""

    def insert(self, conn: psycopg.Connection[Any], entry: AuditLogEntry) -> AuditLogEntry:
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                """
                INSERT INTO audit_logs
                (document_id, actor_type, actor_ref, action, ip_address)
                VALUES (%s, %s, %s, %s, %s)
                RETURNING id, created_at
                """,
                (
                    entry.document_id,
                    entry.actor_kind.value,
                    entry.actor_ref,
                    entry.action.value,
                    entry.ip_address,
                ),
            )
            row = cur.fetchone()
        assert row is not None
        return AuditLogEntry(
            id=row["id"],
            created_at=row["created_at"],
            document_id=entry.document_id,
            actor_kind=entry.actor_kind,
            actor_ref=entry.actor_ref,
            action=entry.action,
            ip_address=entry.ip_address,
        )

    def list_for_document(
        self,
        conn: psycopg.Connection[Any],
        document_id: str,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[AuditLogEntry]:
        """Entries for a document, newest first. ``limit=None`` returns all."""
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                """
                SELECT id, document_id, actor_type, actor_ref, action,
                       ip_address, created_at
                FROM audit_logs
                WHERE document_id = %s
                ORDER BY created_at DESC, id DESC
                LIMIT %s OFFSET %s
                """,
                (document_id, limit, offset),
            )
            rows = cur.fetchall()
        return [self._row_to_entry(row) for row in rows]

    @staticmethod
    def _row_to_entry(row: dict[str, Any]) -> AuditLogEntry:
        return AuditLogEntry(
            id=row["id"],
            document_id=str(row["document_id"]),
            actor_kind=ActorKind(row["actor_type"]),
            actor_ref=row["actor_ref"],
            action=AuditAction(row["action"]),
            ip_address=row["ip_address"],
            created_at=row["created_at"],
        )
