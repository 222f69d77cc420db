import os

import structlog
from sqlalchemy import create_engine, text
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker, Session

logger = structlog.get_logger(__name__)

DB_USER = os.getenv("DB_USER", "app")
DB_PASS = os.getenv("DB_PASS", "app")
DB_NAME = os.getenv("DB_NAME", "appdb")
DB_HOST = os.getenv("DB_HOST", "localhost")
DB_PORT = os.getenv("DB_PORT", "5432")
DB_SCHEMA = os.getenv("DB_SCHEMA", "catalog")

# Use psycopg3; set search_path so unqualified tables use our schema
options = f"-csearch_path={DB_SCHEMA},public"
DATABASE_URL = os.getenv("DATABASE_URL") or (
    f"postgresql+psycopg://{DB_USER}:{DB_PASS}@{DB_HOST}:{DB_PORT}/{DB_NAME}"
    f"?options={options}"
)


def _engine_kwargs(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {"pool_pre_ping": True}
    kwargs = {"connect_args": {"check_same_thread": False}}
    # In-memory SQLite lives inside one connection; share it across sessions
    if ":memory:" in url or url.rstrip("/").endswith("sqlite:"):
        kwargs["poolclass"] = StaticPool
    return kwargs


engine = create_engine(DATABASE_URL, future=True, **_engine_kwargs(DATABASE_URL))
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def init_db():
    """
    Ensure the schema exists, then create tables (idempotent).
    Called once at application startup; a database that cannot be
    reached stops the service from starting.
    """
    try:
        if engine.dialect.name == "postgresql":
            with engine.begin() as conn:
                # Quote the schema to avoid edge cases with names
                conn.execute(text(f'CREATE SCHEMA IF NOT EXISTS "{DB_SCHEMA}"'))
        # Import here to avoid circulars
        from .models import Base  # noqa
        Base.metadata.create_all(bind=engine)
    except Exception:
        logger.exception("database_connection_failed", dialect=engine.dialect.name)
        raise
    logger.info("database_ready", dialect=engine.dialect.name)


def get_session() -> Session:
    """
    FastAPI dependency: yields a DB session, commits on success, rolls back on error.
    """
    s: Session = SessionLocal()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
