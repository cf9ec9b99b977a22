import json
import logging

from sqlalchemy import inspect, text

from ecopoints.db import Base, atomic, build_engine, ensure_sqlite_schema
from ecopoints.logging_config import JsonFormatter


def test_ensure_schema_adds_missing_columns(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'legacy.db'}")
    with engine.begin() as connection:
        connection.execute(
            text(
                "CREATE TABLE vouchers (id INTEGER PRIMARY KEY, partner_name VARCHAR(100) NOT NULL, "
                "title VARCHAR(255) NOT NULL, description TEXT NOT NULL, points_required INTEGER NOT NULL, "
                "quantity INTEGER NOT NULL, created_at DATETIME, updated_at DATETIME)"
            )
        )
    Base.metadata.create_all(bind=engine)

    ensure_sqlite_schema(engine)

    columns = {column["name"] for column in inspect(engine).get_columns("vouchers")}
    assert {"status", "partner_logo_url"} <= columns
    engine.dispose()


def test_ensure_schema_seeds_balance_forward_once(engine):
    with engine.begin() as connection:
        connection.execute(
            text("INSERT INTO users (email, role, points_balance) VALUES ('a@example.com', 'citizen', 50)")
        )
        connection.execute(
            text("INSERT INTO users (email, role, points_balance) VALUES ('b@example.com', 'citizen', 0)")
        )

    ensure_sqlite_schema(engine)
    ensure_sqlite_schema(engine)

    with engine.connect() as connection:
        rows = connection.execute(text("SELECT points_delta, log_type FROM points_log")).fetchall()
    assert [tuple(row) for row in rows] == [(50, "balance_forward")]


def test_atomic_rolls_back_on_error(db_session, make_user):
    user = make_user(points=5)
    try:
        with atomic(db_session):
            user.points_balance = 500
            db_session.flush()
            raise RuntimeError("boom")
    except RuntimeError:
        pass

    db_session.refresh(user)
    assert user.points_balance == 5


def test_json_formatter_keeps_extra_fields():
    record = logging.makeLogRecord(
        {"name": "ecopoints.test", "levelname": "INFO", "msg": "Voucher redeemed", "voucher_id": 7}
    )

    payload = json.loads(JsonFormatter().format(record))

    assert payload["message"] == "Voucher redeemed"
    assert payload["extra"] == {"voucher_id": 7}
