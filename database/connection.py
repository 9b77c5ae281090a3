import logging
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.config import get_settings
from .models import Base

logger = logging.getLogger(__name__)

# Seconds a SQLite writer waits on another writer before failing.
SQLITE_BUSY_TIMEOUT = 30


def build_engine(url: str):
    if url.startswith("sqlite"):
        # Scheduling requests run on worker threads and share one database file
        return create_engine(url, connect_args={"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT})
    elif url.startswith("postgresql"):
        # Pooling plus pre-ping; guarded writes take row locks, so keep connections healthy
        return create_engine(
            url,
            pool_pre_ping=True,
            pool_recycle=300,
            connect_args={"connect_timeout": 10}
        )
    return create_engine(url)


DATABASE_URL = get_settings().database_url
engine = build_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
logger.info(f"🗄️ Calendar database engine ready: {DATABASE_URL.split('://')[0]}://...")


def create_tables(bind=None):
    """Create users, meetings, participants and mailbox tables if missing."""
    Base.metadata.create_all(bind=bind or engine)
    logger.info("Calendar tables ready")


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
