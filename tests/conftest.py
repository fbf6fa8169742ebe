# tests/conftest.py
import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker as _sessionmaker
from sqlalchemy.pool import StaticPool

# -----------------------------------------------------------------------------
# Register every ORM table in Base.metadata before create_all
# -----------------------------------------------------------------------------
import cohortroles.models.cohort  # noqa: F401
import cohortroles.models.cohort_role_mapping  # noqa: F401
import cohortroles.models.role  # noqa: F401
import cohortroles.models.role_assignment  # noqa: F401
from cohortroles.models.base import Base
from cohortroles.core.db import get_db
from cohortroles.main import app


@pytest.fixture()
def engine():
    """
    Fresh in-memory SQLite per test.

    StaticPool: one connection shared by every session, otherwise each new
    connection would see its own empty :memory: database.
    """
    eng = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    try:
        yield eng
    finally:
        Base.metadata.drop_all(eng)
        eng.dispose()


@pytest.fixture()
def db(engine):
    Session = _sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        future=True,
    )
    session = Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(db):
    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.pop(get_db, None)


@pytest.fixture()
def headers():
    return {"X-Role": "manager", "X-Actor-User-Id": str(uuid.uuid4())}
