"""Idempotent DDL for the documents, signatures and audit_logs tables."""

from docseal.database.connection import Database
from docseal.logging.logger import Log

SCHEMA_STATEMENTS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS documents (
        id UUID PRIMARY KEY,
        owner_id TEXT NOT NULL,
        title TEXT NOT NULL,
        original_file_path TEXT NOT NULL,
        signed_file_path TEXT,
        file_hash CHAR(64) NOT NULL,
        page_count INTEGER NOT NULL CHECK (page_count >= 1),
        status TEXT NOT NULL DEFAULT 'pending'
            CHECK (status IN ('pending', 'ready_to_sign', 'signed')),
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        CONSTRAINT documents_owner_file_hash_key UNIQUE (owner_id, file_hash),
        CONSTRAINT documents_signed_artifact_check
            CHECK ((status = 'signed') = (signed_file_path IS NOT NULL))
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS documents_owner_created_idx
        ON documents (owner_id, created_at DESC)
    """,
    """
    CREATE TABLE IF NOT EXISTS signatures (
        id UUID PRIMARY KEY,
        document_id UUID NOT NULL REFERENCES documents (id) ON DELETE CASCADE,
        signer_type TEXT NOT NULL CHECK (signer_type IN ('internal', 'public')),
        signer_ref TEXT NOT NULL,
        page_number INTEGER NOT NULL CHECK (page_number >= 1),
        x_percent DOUBLE PRECISION NOT NULL CHECK (x_percent BETWEEN 0 AND 100),
        y_percent DOUBLE PRECISION NOT NULL CHECK (y_percent BETWEEN 0 AND 100),
        status TEXT NOT NULL DEFAULT 'pending' CHECK (status IN ('pending', 'signed')),
        expires_at TIMESTAMPTZ,
        signer_email_hash CHAR(64),
        signer_email_hint TEXT,
        signed_at TIMESTAMPTZ,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        CONSTRAINT signatures_public_fields_check CHECK (
            signer_type = 'internal'
            OR (expires_at IS NOT NULL
                AND signer_email_hash IS NOT NULL
                AND signer_email_hint IS NOT NULL)
        )
    )
    """,
    """
    CREATE UNIQUE INDEX IF NOT EXISTS signatures_internal_signer_key
        ON signatures (document_id, signer_ref)
        WHERE signer_type = 'internal'
    """,
    """
    CREATE UNIQUE INDEX IF NOT EXISTS signatures_public_token_key
        ON signatures (signer_ref)
        WHERE signer_type = 'public'
    """,
    """
    CREATE TABLE IF NOT EXISTS audit_logs (
        id BIGSERIAL PRIMARY KEY,
        document_id UUID NOT NULL,
        actor_type TEXT NOT NULL CHECK (actor_type IN ('internal', 'public', 'system')),
        actor_ref TEXT NOT NULL,
        action TEXT NOT NULL,
        ip_address TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS audit_logs_document_created_idx
        ON audit_logs (document_id, created_at DESC, id DESC)
    """,
    """
    CREATE OR REPLACE FUNCTION audit_logs_reject_mutation() RETURNS trigger AS $$
    BEGIN
        RAISE EXCEPTION 'audit_logs is append-only';
    END;
    $$ LANGUAGE plpgsql
    """,
    "DROP TRIGGER IF EXISTS audit_logs_append_only ON audit_logs",
    """
    CREATE TRIGGER audit_logs_append_only
        BEFORE UPDATE OR DELETE ON audit_logs
        FOR EACH ROW EXECUTE FUNCTION audit_logs_reject_mutation()
    """,
)


def apply_schema(database: Database) -> None:
    """Create or refresh all tables, indexes and triggers in one transaction."""
    with database.transaction() as conn:
        for statement in SCHEMA_STATEMENTS:
            conn.execute(statement)
    Log.info(f"Schema applied ({len(SCHEMA_STATEMENTS)} statements)")
