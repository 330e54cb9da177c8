# checkout/database.py
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine, Session

from checkout.core.config import Settings, get_settings

settings = get_settings()

# ---------------------------------------------------------
# Engine construction
#
# PostgreSQL (production):
#   - sslmode=<DB_SSLMODE> appended when not already present
#   - pool_pre_ping=True: validate connections before using them
#   - isolation_level: READ COMMITTED by default; checkout correctness
#     comes from row locks + the conditional stock decrement, so
#     REPEATABLE READ / SERIALIZABLE also work (conflicts are retried).
#
# SQLite (local dev + tests):
#   - check_same_thread=False so worker threads can share the pool
#   - foreign keys switched on per connection
# ---------------------------------------------------------


def _with_sslmode(db_url: str, sslmode: str | None) -> str:
    if not sslmode or "sslmode=" in db_url:
        return db_url
    if "?" in db_url:
        return db_url + f"&sslmode={sslmode}"
    return db_url + f"?sslmode={sslmode}"


def _enable_sqlite_foreign_keys(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _set_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def build_engine(config: Settings) -> Engine:
    db_url = config.DATABASE_URL

    if db_url.startswith("sqlite"):
        sqlite_engine = create_engine(
            db_url,
            echo=config.DB_ECHO,
            connect_args={"check_same_thread": False},
        )
        _enable_sqlite_foreign_keys(sqlite_engine)
        return sqlite_engine

    kwargs = {}
    if config.DB_ISOLATION_LEVEL:
        kwargs["isolation_level"] = config.DB_ISOLATION_LEVEL

    return create_engine(
        _with_sslmode(db_url, config.DB_SSLMODE),
        echo=config.DB_ECHO,
        pool_pre_ping=True,
        pool_size=config.DB_POOL_SIZE,
        max_overflow=config.DB_MAX_OVERFLOW,
        **kwargs,
    )


engine = build_engine(settings)


def create_db_and_tables() -> None:
    """
    Create all tables defined in SQLModel metadata if they do not exist.

    This is called once on application startup.
    """
    SQLModel.metadata.create_all(engine)


def get_session():
    """
    FastAPI dependency that yields a SQLModel Session.

    Usage:

        from fastapi import Depends

        @router.get("/example")
        def example_endpoint(session: Session = Depends(get_session)):
            ...
    """
    with Session(engine) as session:
        yield session
