# create_tables.py
import logging

from database import engine, Base
# Import every model so it registers with Base
from modules.documents.models import AuditLogEntry, Document, DocumentShare, User  # noqa: F401

logger = logging.getLogger(__name__)


def create_tables():
    """Create all tables in the database"""
    logger.info("Tables to create: %s", list(Base.metadata.tables.keys()))
    Base.metadata.create_all(bind=engine)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    create_tables()
