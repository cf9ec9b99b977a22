import os
import tempfile
import uuid
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

os.environ.setdefault("DATABASE_URL", f"sqlite:///{os.path.join(tempfile.gettempdir(), 'ecopoints-test.db')}")
os.environ.setdefault("LOG_FORMAT", "plain")

from ecopoints import models
from ecopoints.db import Base, build_engine, get_db
from ecopoints.main import app
from ecopoints.security import create_access_token, get_password_hash
from ecopoints.services.view_cache import view_cache


@pytest.fixture()
def engine(tmp_path):
    """A fresh file-backed SQLite database per test; threads need a shared file."""
    test_engine = build_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture(autouse=True)
def clear_view_cache():
    view_cache.clear()
    yield
    view_cache.clear()


@pytest.fixture()
def client(session_factory):
    def _get_test_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_test_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def make_user(db_session):
    def _make_user(
        points: int = 0,
        role: str = "citizen",
        password: str = "Password123",
        phone_number: Optional[str] = None,
    ) -> models.User:
        user = models.User(
            email=f"user-{uuid.uuid4()}@example.com",
            full_name="Test Resident",
            hashed_password=get_password_hash(password),
            role=role,
            points_balance=points,
            phone_number=phone_number,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def make_voucher(db_session):
    def _make_voucher(
        points_required: int = 40,
        quantity: int = 3,
        status: str = models.VOUCHER_ACTIVE,
        title: str = "Free day bus pass",
    ) -> models.Voucher:
        voucher = models.Voucher(
            partner_name="City Transit",
            title=title,
            description="Unlimited rides on city buses for one day.",
            points_required=points_required,
            quantity=quantity,
            status=status,
        )
        db_session.add(voucher)
        db_session.commit()
        db_session.refresh(voucher)
        return voucher

    return _make_voucher


@pytest.fixture()
def auth_headers():
    def _auth_headers(user: models.User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user)}"}

    return _auth_headers
