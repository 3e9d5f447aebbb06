from __future__ import annotations

import os
import sys

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import importlib

fastapi_app = importlib.import_module("pricing_config.main").app
from pricing_config.db.base import Base
from pricing_config.db.session import get_db
from pricing_config.models.setting_category import SettingCategory

# Ensure all models are registered with SQLAlchemy metadata
import pricing_config.models  # noqa: F401

CATEGORY_NAMES = ("PRICING", "LEASE", "REFILL", "SWAP", "DISCOUNTS", "TAXES")


@pytest.fixture(scope="session")
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, _connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(engine)
    return engine


def _seed_categories(db) -> None:
    for order, name in enumerate(CATEGORY_NAMES, start=1):
        db.add(SettingCategory(name=name, description=f"{name.title()} settings", display_order=order))
    db.commit()


@pytest.fixture(scope="function")
def db_session(engine):
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSessionLocal()
    _seed_categories(db)
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def client(engine, db_session):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def _override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    fastapi_app.dependency_overrides[get_db] = _override_get_db
    with TestClient(fastapi_app) as test_client:
        yield test_client
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def category_ids(db_session) -> dict[str, int]:
    return {row.name: row.id for row in db_session.query(SettingCategory).all()}
