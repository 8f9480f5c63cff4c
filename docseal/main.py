from docseal.config.settings import Settings
from docseal.database.connection import Database
from docseal.database.schema import apply_schema
from docseal.logging.logger import Log
from docseal.service import build_service


def main() -> None:
    """Startup check: open pool -> apply schema -> wire the service once.

    The service is embedded by its callers; building it here only surfaces
    configuration errors (storage root, PDF engine) before they are deployed.
    """
    settings = Settings()
    Log.configure(settings.log_level)
    database = Database.from_settings(settings)

    try:
        apply_schema(database)
        build_service(settings, database)
        Log.info(
            "docseal ready",
            env=settings.app_env,
            storage_root=settings.storage_root,
            pdf_engine=settings.pdf_engine,
        )
    finally:
        database.close()


if __name__ == "__main__":
    main()
