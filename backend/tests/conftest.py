"""
Shared fixtures: in-memory SQLite lead store and a fixed clock
"""
import itertools
from datetime import datetime, timedelta

import pytest
import pytz

from powerdialer.domain.models.lead import DialerLead, DialerTimezone, LeadStatus
from powerdialer.infrastructure.storage.database import (
    create_db_engine,
    create_session_factory,
    init_schema,
)
from powerdialer.infrastructure.storage.sql_lead_store import SqlLeadStore

# Monday 2026-03-02 10:30 AM Eastern (EST), inside the Central block
FIXED_NOW = datetime(2026, 3, 2, 15, 30, tzinfo=pytz.UTC)


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def sql_store():
    engine = create_db_engine("sqlite:///:memory:")
    init_schema(engine)
    yield SqlLeadStore(create_session_factory(engine))
    engine.dispose()


@pytest.fixture
def make_lead(sql_store):
    """
    Insert a lead with sensible defaults.

    Each call gets a distinct phone number and a created_at one minute
    later than the previous lead, so ordering by age is deterministic.
    """
    counter = itertools.count(1)

    def _make(**overrides) -> DialerLead:
        n = next(counter)
        values = {
            "phone_number": f"919555{n:04d}",
            "business_name": f"Business {n}",
            "region": "NC",
            "timezone": DialerTimezone.ET,
            "status": LeadStatus.QUEUED,
            "created_at": FIXED_NOW - timedelta(days=30) + timedelta(minutes=n),
            "updated_at": FIXED_NOW - timedelta(days=30) + timedelta(minutes=n),
        }
        values.update(overrides)
        return sql_store.insert_lead(DialerLead(**values))

    return _make
