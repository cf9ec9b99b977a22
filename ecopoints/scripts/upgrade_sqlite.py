from ecopoints import models  # noqa: F401  registers tables on Base
from ecopoints.db import Base, engine, ensure_sqlite_schema
from ecopoints.logging_config import setup_logging


def main() -> None:
    setup_logging(fmt="plain")
    Base.metadata.create_all(bind=engine)
    ensure_sqlite_schema()
    print("SQLite schema updated (vouchers/redemptions/points_log tables are synced).")


if __name__ == "__main__":
    main()
