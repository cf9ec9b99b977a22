import logging
import os
from contextlib import contextmanager

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import Session, declarative_base, sessionmaker

logger = logging.getLogger(__name__)

BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
DEFAULT_SQLITE_PATH = os.path.join(BASE_DIR, "ecopoints.db")
# For dev: local SQLite file. Production points DATABASE_URL at Postgres.
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{DEFAULT_SQLITE_PATH}")
SQLITE_BUSY_TIMEOUT_SECONDS = 15


def build_engine(url: str):
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)

    engine = create_engine(
        url,
        connect_args={
            "check_same_thread": False,  # sessions may hop threads under FastAPI
            "timeout": SQLITE_BUSY_TIMEOUT_SECONDS,
        },
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _connection_record):
        dbapi_connection.execute("PRAGMA foreign_keys=ON")

    return engine


engine = build_engine(DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """FastAPI dependency that yields a db session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session):
    """Commit the session's unit of work, or roll all of it back on any error."""
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


def lock_row(db: Session, model, row_id: int):
    """SELECT ... FOR UPDATE one row by id, refreshing any copy already in the session.

    SQLite has no row locks and ignores FOR UPDATE, so the row is touched first:
    the no-op write takes the database write lock for the rest of the transaction,
    and concurrent lockers wait on the busy timeout instead of reading stale values.
    """
    if db.get_bind().dialect.name == "sqlite":
        db.execute(
            text(f"UPDATE {model.__tablename__} SET id = id WHERE id = :row_id"),
            {"row_id": row_id},
        )
    return (
        db.query(model)
        .filter(model.id == row_id)
        .with_for_update()
        .populate_existing()
        .one_or_none()
    )


def _sqlite_has_column(connection, table_name: str, column_name: str) -> bool:
    rows = connection.execute(text(f"PRAGMA table_info('{table_name}')"))
    return any(row[1] == column_name for row in rows)


def _seed_points_log_if_empty(connection) -> None:
    try:
        log_count = connection.execute(text("SELECT COUNT(1) FROM points_log")).scalar()
    except Exception:
        return
    if log_count and log_count > 0:
        return

    rows = connection.execute(
        text("SELECT id, points_balance FROM users WHERE points_balance IS NOT NULL AND points_balance > 0")
    ).fetchall()
    for user_id, points_balance in rows:
        connection.execute(
            text(
                "INSERT INTO points_log (user_id, points_delta, log_type, reason) "
                "VALUES (:user_id, :delta, 'balance_forward', 'Existing balance snapshot')"
            ),
            {"user_id": user_id, "delta": points_balance},
        )
    if rows:
        logger.info("Seeded points log with %d balance-forward entries", len(rows))


UPGRADE_COLUMNS = [
    ("vouchers", "status", "VARCHAR(20) NOT NULL DEFAULT 'active'"),
    ("vouchers", "partner_logo_url", "TEXT"),
    ("voucher_redemptions", "coupon_code", "VARCHAR(255)"),
    ("voucher_redemptions", "fulfilled_at", "DATETIME"),
    ("points_log", "source_id", "INTEGER"),
]


def ensure_sqlite_schema(target_engine=None):
    """Apply lightweight ALTER TABLE statements so sqlite gains the newest columns."""
    target_engine = target_engine or engine
    if not target_engine.url.drivername.startswith("sqlite"):
        return

    with target_engine.begin() as connection:
        for table_name, column_name, ddl in UPGRADE_COLUMNS:
            if not _sqlite_has_column(connection, table_name, column_name):
                connection.execute(text(f"ALTER TABLE {table_name} ADD COLUMN {column_name} {ddl}"))
                logger.info("Added column %s.%s", table_name, column_name)
        _seed_points_log_if_empty(connection)
