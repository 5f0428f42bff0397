"""
SQLAlchemy Database Models
Maps to the dialer PostgreSQL tables (see database/schema.sql)
"""
from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    Time,
    TypeDecorator,
)
from sqlalchemy.orm import declarative_base, relationship
import uuid

from powerdialer.utils.time_utils import ensure_utc, utc_now

Base = declarative_base()


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime column that always round-trips as UTC.

    SQLite has no timezone support, so values are stored there as naive UTC.
    """
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        value = ensure_utc(value)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        return ensure_utc(value)


def _new_id() -> str:
    return str(uuid.uuid4())


class DialerLeadRow(Base):
    """Lead model - maps to dialer_leads table"""
    __tablename__ = "dialer_leads"

    id = Column(String(36), primary_key=True, default=_new_id)
    phone_number = Column(String(20), nullable=False, unique=True)

    business_name = Column(String(255))
    owner_name = Column(String(255))
    first_name = Column(String(100))
    website = Column(String(255))
    region = Column(String(100))
    timezone = Column(String(2), index=True)

    status = Column(String(20), nullable=False, default="queued", index=True)
    attempt_count = Column(Integer, nullable=False, default=0)
    max_attempts = Column(Integer, nullable=False, default=5)
    last_called_at = Column(UTCDateTime)
    next_call_at = Column(UTCDateTime, index=True)
    last_outcome = Column(String(32))
    demo_booked = Column(Boolean, nullable=False, default=False)
    demo_date = Column(UTCDateTime)
    not_interested = Column(Boolean, nullable=False, default=False)
    wrong_number = Column(Boolean, nullable=False, default=False)

    notes = Column(Text)
    import_batch = Column(String(100))
    sheet_row_id = Column(String(50))
    created_at = Column(UTCDateTime, default=utc_now)
    updated_at = Column(UTCDateTime, default=utc_now)

    # Relationships
    history = relationship("CallHistoryRow", back_populates="lead", cascade="all, delete-orphan")


class CallHistoryRow(Base):
    """Call history model - maps to dialer_call_history table"""
    __tablename__ = "dialer_call_history"

    id = Column(String(36), primary_key=True, default=_new_id)
    lead_id = Column(String(36), ForeignKey("dialer_leads.id", ondelete="CASCADE"), nullable=False, index=True)
    attempt_number = Column(Integer, nullable=False)
    outcome = Column(String(32), nullable=False)
    notes = Column(Text)
    demo_date = Column(UTCDateTime)
    callback_at = Column(UTCDateTime)
    call_date = Column(Date, nullable=False, index=True)
    call_time = Column(Time, nullable=False)
    created_at = Column(UTCDateTime, default=utc_now)

    # Relationships
    lead = relationship("DialerLeadRow", back_populates="history")


class DailyCallStatsRow(Base):
    """Daily counters - maps to daily_call_stats table"""
    __tablename__ = "daily_call_stats"

    call_date = Column(Date, primary_key=True)
    total_dials = Column(Integer, nullable=False, default=0)
    contacts = Column(Integer, nullable=False, default=0)
    conversations = Column(Integer, nullable=False, default=0)
    demos_booked = Column(Integer, nullable=False, default=0)
