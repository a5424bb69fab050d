from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
import logging

from yamifit_chatbot.core.config import settings

logger = logging.getLogger(__name__)

def _build_database_url() -> str:
    if settings.DATABASE_URL:
        return settings.DATABASE_URL
    if not all([settings.SUPABASE_DB_HOST, settings.SUPABASE_DB_PASSWORD]):
        logger.error("Missing required Supabase database environment variables (SUPABASE_DB_HOST, SUPABASE_DB_PASSWORD).")
        raise ValueError("Missing required Supabase environment variables.")
    # postgresql://<user>:<pass>@<host>:<port>/<db>
    return (
        f"postgresql://{settings.SUPABASE_DB_USER}:{settings.SUPABASE_DB_PASSWORD}"
        f"@{settings.SUPABASE_DB_HOST}:{settings.SUPABASE_DB_PORT}/{settings.SUPABASE_DB_NAME}"
    )

SQLALCHEMY_DATABASE_URL = _build_database_url()

engine_kwargs = {}
connect_args = {}
if SQLALCHEMY_DATABASE_URL.startswith("sqlite"):
    connect_args["check_same_thread"] = False
    if ":memory:" in SQLALCHEMY_DATABASE_URL or SQLALCHEMY_DATABASE_URL in ("sqlite://", "sqlite:///"):
        # One shared connection so every session sees the same in-memory database
        engine_kwargs["poolclass"] = StaticPool
    logger.info(f"Connecting to database: {SQLALCHEMY_DATABASE_URL}")
else:
    if settings.SUPABASE_DB_SSL_MODE != 'disable':
        connect_args["sslmode"] = settings.SUPABASE_DB_SSL_MODE
    # Bounded store calls
    connect_args["options"] = f"-c statement_timeout={settings.DB_STATEMENT_TIMEOUT_MS}"
    engine_kwargs["pool_size"] = 10
    engine_kwargs["max_overflow"] = 20
    engine_kwargs["pool_pre_ping"] = True
    logger.info(
        f"Connecting to database: postgresql://{settings.SUPABASE_DB_USER}:***@"
        f"{settings.SUPABASE_DB_HOST}:{settings.SUPABASE_DB_PORT}/{settings.SUPABASE_DB_NAME}"
    )

try:
    engine = create_engine(
        SQLALCHEMY_DATABASE_URL,
        connect_args=connect_args,
        **engine_kwargs
    )
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base = declarative_base()

    logger.info("SQLAlchemy engine and session configured successfully.")

except Exception as e:
    logger.error(f"Failed to create SQLAlchemy engine or configure session: {e}", exc_info=True)
    raise

def get_db():
    """
    FastAPI dependency that provides a database session per request.
    Ensures the session is always closed, even if errors occur.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
