from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "docseal"
    db_username: str = "docseal"
    db_password: str = "secret"
    db_pool_min_size: int = Field(default=1, ge=1)
    db_pool_max_size: int = Field(default=10, ge=1)
    db_connect_timeout_seconds: float = Field(default=10.0, gt=0)
    db_statement_timeout_ms: int = Field(default=15000, ge=0)

    storage_root: Path = Path("/app/files")

    pdf_engine: str = "pdfplumber"
    max_upload_bytes: int = Field(default=20 * 1024 * 1024, gt=0)
    stamp_text: str = "Signed"
    stamp_font_size: float = Field(default=12.0, gt=0)

    public_link_ttl_hours: int = Field(default=48, gt=0)
    public_link_base_url: str = "http://localhost:5173/sign"

    audit_failure_alarm_threshold: int = Field(default=3, ge=1)
