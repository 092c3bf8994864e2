import os
# Ensure the app factory picks the Testing config & SQLite memory DB
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("TEST_DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("ADMIN_API_TOKEN", "test-admin-token")

import pytest
from sqlalchemy.pool import StaticPool

from feedbackhub import create_app
from feedbackhub.extensions import db
from feedbackhub.services import applications as app_service

ADMIN_HEADERS = {"Authorization": "Bearer test-admin-token"}


@pytest.fixture(scope="session")
def app():
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        # One shared connection so every session sees the same in-memory DB
        "SQLALCHEMY_ENGINE_OPTIONS": {
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        },
        "ADMIN_API_TOKEN": "test-admin-token",
        "INGEST_RATE_LIMIT": "60 per minute",
    })
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def admin_headers():
    return dict(ADMIN_HEADERS)


@pytest.fixture(autouse=True)
def _db_clean(app):
    # Clean BEFORE each test
    with app.app_context():
        db.session.rollback()
        for tbl in reversed(db.metadata.sorted_tables):
            db.session.execute(tbl.delete())
        db.session.commit()
    app.extensions["feedbackhub.ingestion"].rate_limiter.reset()
    yield
    # And AFTER each test (keeps state hermetic even if a test fails mid-transaction)
    with app.app_context():
        db.session.rollback()
        for tbl in reversed(db.metadata.sorted_tables):
            db.session.execute(tbl.delete())
        db.session.commit()


@pytest.fixture()
def make_application(app):
    """Create an application; returns (app_id, plaintext_key)."""
    def _make(slug="demo-app", name="Demo App", owner_id=None):
        with app.app_context():
            row, key = app_service.create_application(name, slug, owner_id)
            return row.id, key
    return _make
