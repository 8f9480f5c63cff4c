import os
import uuid
from collections.abc import Generator
from pathlib import Path

import pytest

from docseal.config.settings import Settings
from docseal.database.connection import Database
from docseal.database.schema import apply_schema
from docseal.service import SigningService, build_service


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "docseal_test")
    os.environ.setdefault("DB_CONNECT_TIMEOUT_SECONDS", "3")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def database(test_settings: Settings) -> Generator[Database, None, None]:
    db = Database.from_settings(test_settings)
    try:
        apply_schema(db)
    except Exception as e:
        db.close()
        pytest.skip(
            f"PostgreSQL test DB not available: {e}. "
            "Set DB_* env to point at a disposable database"
        )
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def files_root(tmp_path: Path) -> Path:
    return tmp_path / "files"


@pytest.fixture
def service(test_settings: Settings, database: Database, files_root: Path) -> SigningService:
    settings = test_settings.model_copy(update={"storage_root": files_root})
    return build_service(settings, database)


@pytest.fixture
def owner_id(database: Database) -> Generator[str, None, None]:
    """A fresh owner per test; their documents (and signatures) are removed afterwards.

    audit_logs rows stay behind: the table rejects deletes.
    """
    owner = f"owner-{uuid.uuid4()}"
    yield owner
    with database.transaction() as conn:
        conn.execute("DELETE FROM documents WHERE owner_id = %s", (owner,))
