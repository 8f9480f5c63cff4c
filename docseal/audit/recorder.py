import threading

import psycopg

from docseal.core.errors import ValidationError
from docseal.core.models import AuditLogEntry
from docseal.database.connection import Database
from docseal.database.repositories.audit_log_repository import AuditLogRepository
from docseal.logging.logger import Log


class AuditRecorder:
    """Appends audit entries after the primary operation has committed.

    A failed write never undoes the operation it describes. It is logged,
    counted, and once ``alarm_threshold`` writes in a row have failed every
    further failure raises a critical alarm until a write succeeds again.
    """

    def __init__(
        self,
        database: Database,
        repository: AuditLogRepository,
        alarm_threshold: int = 3,
    ) -> None:
        self._database = database
        self._repository = repository
        self._alarm_threshold = alarm_threshold
        self._consecutive_failures = 0
        self._lock = threading.Lock()

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    def record(self, entry: AuditLogEntry) -> bool:
        """Append one entry. Returns False if the write failed."""
        try:
            with self._database.transaction() as conn:
                self._repository.insert(conn, entry)
        except psycopg.Error as exc:
            self._on_failure(entry, exc)
            return False
        with self._lock:
            self._consecutive_failures = 0
        Log.debug(
            f"Audit {entry.action.value} recorded",
            document_id=entry.document_id,
            actor=f"{entry.actor_kind.value}:{entry.actor_ref}",
        )
        return True

    def list_for(
        self, document_id: str, limit: int | None = None, offset: int = 0
    ) -> list[AuditLogEntry]:
        """Entries for a document, newest first."""
        if limit is not None and limit < 0:
            raise ValidationError("limit must be non-negative")
        if offset < 0:
            raise ValidationError("offset must be non-negative")
        with self._database.connection() as conn:
            return self._repository.list_for_document(conn, document_id, limit, offset)

    def _on_failure(self, entry: AuditLogEntry, exc: Exception) -> None:
        with self._lock:
            self._consecutive_failures += 1
            failures = self._consecutive_failures
        Log.error(
            f"Audit write failed for {entry.action.value}",
            document_id=entry.document_id,
            actor=f"{entry.actor_kind.value}:{entry.actor_ref}",
            error=repr(exc),
        )
        if failures >= self._alarm_threshold:
            Log.critical(
                "ALARM: audit trail is dropping entries",
                consecutive_failures=failures,
                action=entry.action.value,
                document_id=entry.document_id,
            )
