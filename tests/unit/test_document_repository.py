from datetime import datetime, timezone
from unittest.mock import MagicMock

import psycopg
import pytest

from docseal.core.errors import ConflictError
from docseal.core.models import Document
from docseal.core.status import DocumentStatus
from docseal.database.repositories.document_repository import DocumentRepository

DOC_ID = "0b7c3a52-8d3e-4d37-9a51-2f4d6f1c9e10"
CREATED = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _make_row(**overrides: object) -> dict:
    row: dict = {
        "id": DOC_ID,
        "owner_id": "owner-1",
        "title": "Contract",
        "original_file_path": f"originals/{DOC_ID}.pdf",
        "signed_file_path": None,
        "file_hash": "a" * 64,
        "page_count": 2,
        "status": "pending",
        "created_at": CREATED,
    }
    row.update(overrides)
    return row


def _make_document() -> Document:
    return Document(
        id=DOC_ID,
        owner_id="owner-1",
        title="Contract",
        original_file_path=f"originals/{DOC_ID}.pdf",
        file_hash="a" * 64,
        page_count=2,
        status=DocumentStatus.PENDING,
    )


def _mock_connection() -> tuple[MagicMock, MagicMock]:
    """Wire up a mock connection + cursor and return (mock_conn, mock_cursor)."""
    mock_cursor = MagicMock()
    mock_conn = MagicMock()
    mock_conn.cursor.return_value.__enter__ = MagicMock(return_value=mock_cursor)
    mock_conn.cursor.return_value.__exit__ = MagicMock(return_value=False)
    return mock_conn, mock_cursor


class TestInsert:
    def test_returns_persisted_document(self) -> None:
        conn, cursor = _mock_connection()
        cursor.fetchone.return_value = _make_row()

        result = DocumentRepository().insert(conn, _make_document())

        assert result.id == DOC_ID
        assert result.status is DocumentStatus.PENDING
        assert result.created_at == CREATED
        params = cursor.execute.call_args[0][1]
        assert params == (
            DOC_ID,
            "owner-1",
            "Contract",
            f"originals/{DOC_ID}.pdf",
            "a" * 64,
            2,
            "pending",
        )

    def test_duplicate_hash_is_conflict(self) -> None:
        conn, cursor = _mock_connection()
        cursor.execute.side_effect = psycopg.errors.UniqueViolation("duplicate key")

        with pytest.raises(ConflictError, match="Same document already exists"):
            DocumentRepository().insert(conn, _make_document())


class TestFind:
    def test_find_owned_filters_by_owner(self) -> None:
        conn, cursor = _mock_connection()
        cursor.fetchone.return_value = _make_row()

        result = DocumentRepository().find_owned(conn, "owner-1", DOC_ID)

        assert result is not None
        sql, params = cursor.execute.call_args[0]
        assert "owner_id = %s" in sql
        assert "FOR UPDATE" not in sql
        assert params == (DOC_ID, "owner-1")

    def test_find_owned_can_lock_row(self) -> None:
        conn, cursor = _mock_connection()
        cursor.fetchone.return_value = _make_row()

        DocumentRepository().find_owned(conn, "owner-1", DOC_ID, for_update=True)

        assert cursor.execute.call_args[0][0].endswith("FOR UPDATE")

    def test_find_owned_returns_none_when_missing(self) -> None:
        conn, cursor = _mock_connection()
        cursor.fetchone.return_value = None

        assert DocumentRepository().find_owned(conn, "owner-2", DOC_ID) is None

    def test_find_by_id_maps_signed_row(self) -> None:
        conn, cursor = _mock_connection()
        cursor.fetchone.return_value = _make_row(
            status="signed", signed_file_path=f"signed/{DOC_ID}.pdf"
        )

        result = DocumentRepository().find_by_id(conn, DOC_ID)

        assert result is not None
        assert result.status is DocumentStatus.SIGNED
        assert result.signed_file_path == f"signed/{DOC_ID}.pdf"

    def test_list_for_owner(self) -> None:
        conn, cursor = _mock_connection()
        cursor.fetchall.return_value = [_make_row(), _make_row(id="other", title="NDA")]

        result = DocumentRepository().list_for_owner(conn, "owner-1")

        assert [d.title for d in result] == ["Contract", "NDA"]
        assert "ORDER BY created_at DESC" in cursor.execute.call_args[0][0]


class TestUpdates:
    def test_update_status_guards_expected_state(self) -> None:
        conn, cursor = _mock_connection()
        cursor.rowcount = 1

        DocumentRepository().update_status(
            conn, DOC_ID, DocumentStatus.PENDING, DocumentStatus.READY_TO_SIGN
        )

        assert cursor.execute.call_args[0][1] == ("ready_to_sign", DOC_ID, "pending")

    def test_update_status_conflict_when_state_moved(self) -> None:
        conn, cursor = _mock_connection()
        cursor.rowcount = 0

        with pytest.raises(ConflictError, match="no longer pending"):
            DocumentRepository().update_status(
                conn, DOC_ID, DocumentStatus.PENDING, DocumentStatus.READY_TO_SIGN
            )

    def test_mark_signed_sets_path(self) -> None:
        conn, cursor = _mock_connection()
        cursor.rowcount = 1

        DocumentRepository().mark_signed(conn, DOC_ID, f"signed/{DOC_ID}.pdf")

        sql, params = cursor.execute.call_args[0]
        assert "signed_file_path IS NULL" in sql
        assert params == (f"signed/{DOC_ID}.pdf", DOC_ID)

    def test_mark_signed_conflict_when_already_signed(self) -> None:
        conn, cursor = _mock_connection()
        cursor.rowcount = 0

        with pytest.raises(ConflictError, match="already signed"):
            DocumentRepository().mark_signed(conn, DOC_ID, f"signed/{DOC_ID}.pdf")

    def test_delete_conflict_when_row_gone(self) -> None:
        conn, cursor = _mock_connection()
        cursor.rowcount = 0

        with pytest.raises(ConflictError, match="already deleted"):
            DocumentRepository().delete(conn, DOC_ID)
