"""Root conftest.py for shared test fixtures and configuration."""

import json
import os
from datetime import datetime, timezone
from typing import Generator

os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "INFO"

import pytest  # pylint: disable=wrong-import-position
from fastapi.testclient import TestClient  # pylint: disable=wrong-import-position
from sqlalchemy import JSON, Text, TypeDecorator, create_engine, event, text as sql_text  # pylint: disable=wrong-import-position
from sqlalchemy.dialects.postgresql import ARRAY, JSONB  # pylint: disable=wrong-import-position
from sqlalchemy.orm import Session, sessionmaker  # pylint: disable=wrong-import-position
from sqlalchemy.pool import StaticPool  # pylint: disable=wrong-import-position
from sqlalchemy.sql.elements import TextClause  # pylint: disable=wrong-import-position

from stagecue.db import models  # pylint: disable=unused-import,wrong-import-position
from stagecue.db.base import Base  # pylint: disable=wrong-import-position
from stagecue.db.session import get_db  # pylint: disable=wrong-import-position
from stagecue.services.connection_service import ConnectionMonitor  # pylint: disable=wrong-import-position
from stagecue.services.cue_execution_service import CueExecutionService  # pylint: disable=wrong-import-position
from stagecue.services.cue_service import DeviceService  # pylint: disable=wrong-import-position
from tests.utils.factories import FakeTransport  # pylint: disable=wrong-import-position

# Fast frames keep engine tests short
TEST_FRAME_INTERVAL = 0.01


# Patch TextClause to allow boolean evaluation (workaround for SQLite testing)
# This is needed because SQLAlchemy tries to do `not col.server_default` which fails for TextClause

def _text_clause_bool(self):
    """Allow TextClause to be evaluated as True in boolean context."""
    return True

TextClause.__bool__ = _text_clause_bool

class ListAsJSON(TypeDecorator):  # pylint: disable=too-many-ancestors
    """Converts Python lists to JSON strings for SQLite."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if isinstance(value, (list, tuple)):
            return json.dumps(list(value))
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        if isinstance(value, str):
            try:
                return json.loads(value)
            except (json.JSONDecodeError, ValueError):
                return value
        return value

    def process_literal_param(self, value, dialect):
        return self.process_bind_param(value, dialect)

    @property
    def python_type(self):
        return list

# Fix PostgreSQL-specific types and defaults for SQLite
for table in Base.metadata.tables.values():
    for column in table.columns:
        # Replace ARRAY with custom ListAsJSON type
        if isinstance(column.type, ARRAY):
            column.type = ListAsJSON()
        # Replace JSONB with JSON
        elif isinstance(column.type, JSONB):
            column.type = JSON()

        if column.server_default is not None and isinstance(column.server_default.arg, TextClause):
            if 'now()' in str(column.server_default.arg).lower():
                # Use CURRENT_TIMESTAMP instead of function call for RETURNING compatibility
                column.server_default = sql_text("CURRENT_TIMESTAMP")

# Now import app (which will use the patched models)
from stagecue.main import app  # pylint: disable=wrong-import-position


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""

    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Enable foreign key support for SQLite
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    # Auto-populate created_at/updated_at timestamps for SQLite
    @event.listens_for(Base, "before_insert", propagate=True)
    def set_defaults(mapper, connection, target):
        now = datetime.now(timezone.utc)
        if hasattr(target, 'created_at') and target.created_at is None:
            target.created_at = now
        if hasattr(target, 'updated_at') and target.updated_at is None:
            target.updated_at = now

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    """Session factory bound to the test engine, as the engine and transport use it."""
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db_session(session_factory) -> Generator[Session, None, None]:
    """Create a test database session."""
    session = session_factory()

    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def fake_transport() -> FakeTransport:
    """Recording transport standing in for real WLED devices."""
    return FakeTransport()


@pytest.fixture
def engine_service(fake_transport, session_factory) -> CueExecutionService:
    """Cue engine wired to the fake transport with fast frames."""
    return CueExecutionService(
        fake_transport,
        session_factory,
        frame_interval=TEST_FRAME_INTERVAL,
        completion_grace=1.0,
    )


@pytest.fixture
def device_lister(session_factory):
    def list_ids():
        with session_factory() as db:
            return DeviceService.list_device_ids(db)
    return list_ids


@pytest.fixture(scope="function")
def client(db_session, session_factory, fake_transport, device_lister, monkeypatch) -> Generator[TestClient, None, None]:
    """
    Create a test client with database session override.

    The lifespan-built services are swapped for ones using the test database
    and the fake transport.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    monkeypatch.setattr("stagecue.main.list_registered_devices", lambda: [])
    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        app.state.connection_monitor.stop_monitoring()
        app.state.transport.close()
        app.state.transport = fake_transport
        app.state.execution_service = CueExecutionService(
            fake_transport,
            session_factory,
            frame_interval=TEST_FRAME_INTERVAL,
            completion_grace=1.0,
        )
        app.state.connection_monitor = ConnectionMonitor(fake_transport, device_lister, interval=60)
        yield test_client

    app.dependency_overrides.clear()
