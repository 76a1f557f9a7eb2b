import logging
import time

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import declarative_base

from datahub_api.core.config import settings

logger = logging.getLogger(__name__)

# Metadata tables only; dataset tables are built at runtime by Dwh
Base = declarative_base()


def wait_for_database(engine, attempts: int, delay: float) -> None:
    """Block until `engine` answers SELECT 1; the last connection error is raised."""
    for attempt in range(1, attempts + 1):
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return
        except OperationalError as e:
            if attempt == attempts:
                logger.error(f"Database unreachable after {attempts} attempts: {e}")
                raise
            logger.warning(f"Database not ready ({attempt}/{attempts}), retrying in {delay}s")
            time.sleep(delay)


def init_db(engine=None) -> None:
    """Create the projects, datasets and source_files tables once the database accepts connections."""
    from datahub_api.db.session import engine as default_engine
    import datahub_api.models  # noqa: F401  (registers tables on Base.metadata)

    engine = engine or default_engine
    wait_for_database(engine, settings.DB_CONNECT_ATTEMPTS, settings.DB_CONNECT_RETRY_SECONDS)
    Base.metadata.create_all(bind=engine)
    logger.info(f"Metadata tables ready: {', '.join(sorted(Base.metadata.tables))}")
