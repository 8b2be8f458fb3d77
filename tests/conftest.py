"""
Shared fixtures: a throwaway SQLite database per test, seed helpers and a
stubbed audit queue.
"""
import os

# The application engine is built at import time; keep it off PostgreSQL
os.environ["DATABASE_URL"] = "sqlite://"

from datetime import time

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from slotbook.config.database import create_tables
from slotbook.models import AvailabilityRule, AvailabilitySettings, BusyBlock, Profile, Service
from slotbook.services.audit import audit_service


class FakeAuditTask:
    """Stands in for the Celery task; records what would have been queued"""

    def __init__(self, fail=False):
        self.calls = []
        self.fail = fail

    def delay(self, **kwargs):
        if self.fail:
            raise ConnectionError("broker unreachable")
        self.calls.append(kwargs)


@pytest.fixture(autouse=True)
def audit_queue(monkeypatch):
    fake = FakeAuditTask()
    monkeypatch.setattr(audit_service, "write_audit_log", fake)
    return fake


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'slotbook.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )

    # pysqlite's own transaction handling defers BEGIN; take the write lock
    # at the start of every transaction so writers queue like a row lock
    @event.listens_for(engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    create_tables(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


# ============================================================================
# Seed helpers
# ============================================================================

def make_provider(db, username="jane-doe", timezone="UTC"):
    provider = Profile(username=username, full_name="Jane Doe", timezone=timezone)
    db.add(provider)
    db.commit()
    return provider


def make_service(db, provider, duration_minutes=30, is_active=True, name="Consultation"):
    service = Service(
        provider_id=provider.id,
        name=name,
        duration_minutes=duration_minutes,
        is_active=is_active,
    )
    db.add(service)
    db.commit()
    return service


def add_rule(db, provider, day_of_week, start, end):
    rule = AvailabilityRule(
        provider_id=provider.id,
        day_of_week=day_of_week,
        start_time_local=time.fromisoformat(start),
        end_time_local=time.fromisoformat(end),
    )
    db.add(rule)
    db.commit()
    return rule


def set_policy(db, provider, before=0, after=0, min_notice=0):
    settings = AvailabilitySettings(
        provider_id=provider.id,
        buffer_before_minutes=before,
        buffer_after_minutes=after,
        min_notice_minutes=min_notice,
    )
    db.merge(settings)
    db.commit()


def add_busy_block(db, provider, start_at, end_at, title="Busy"):
    block = BusyBlock(provider_id=provider.id, start_at=start_at, end_at=end_at, title=title)
    db.add(block)
    db.commit()
    return block
