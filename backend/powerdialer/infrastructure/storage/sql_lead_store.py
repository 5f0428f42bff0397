"""
SQL Lead Store
SQLAlchemy implementation of LeadStore (PostgreSQL in production, SQLite in tests)
"""
import logging
from contextlib import contextmanager
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from powerdialer.core.exceptions import (
    ConflictError,
    LeadNotFoundError,
    UpstreamUnavailableError,
)
from powerdialer.domain.interfaces.lead_store import DispositionPlanner, LeadStore
from powerdialer.domain.models.call_history import (
    CallHistoryEntry,
    DailyCallStats,
    DailyStatsDelta,
)
from powerdialer.domain.models.disposition import DispositionPlan
from powerdialer.domain.models.lead import (
    DESCRIPTIVE_FIELDS,
    TERMINAL_STATUSES,
    DialerLead,
    DialerTimezone,
    LeadFilter,
    LeadStatus,
)
from powerdialer.infrastructure.storage.database import session_scope
from powerdialer.infrastructure.storage.models import (
    CallHistoryRow,
    DailyCallStatsRow,
    DialerLeadRow,
)

logger = logging.getLogger(__name__)

_LEAD_COLUMNS = [column.name for column in DialerLeadRow.__table__.columns]
_HISTORY_COLUMNS = [column.name for column in CallHistoryRow.__table__.columns]

# Manual edits may touch these besides the descriptive fields
_EDITABLE_FIELDS = set(DESCRIPTIVE_FIELDS) | {"max_attempts", "updated_at"}


def _column_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _to_lead(row: DialerLeadRow) -> DialerLead:
    return DialerLead.model_validate({name: getattr(row, name) for name in _LEAD_COLUMNS})


def _to_history(row: CallHistoryRow) -> CallHistoryEntry:
    return CallHistoryEntry.model_validate({name: getattr(row, name) for name in _HISTORY_COLUMNS})


def _callable():
    return DialerLeadRow.attempt_count < DialerLeadRow.max_attempts


class SqlLeadStore(LeadStore):
    """
    Lead store over a SQLAlchemy session factory.

    Dispositions lock the lead row (SELECT ... FOR UPDATE) and write the
    lead, history row and daily counters in one transaction.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        try:
            with session_scope(self._session_factory) as db:
                yield db
        except OperationalError as e:
            logger.error(f"Lead store unavailable: {e}")
            raise UpstreamUnavailableError(f"Lead store unavailable: {e.orig}") from e

    # Point lookups

    def get_lead(self, lead_id: str) -> Optional[DialerLead]:
        with self._session() as db:
            row = db.get(DialerLeadRow, lead_id)
            return _to_lead(row) if row else None

    def find_by_phone(self, phone_number: str) -> Optional[DialerLead]:
        with self._session() as db:
            row = db.query(DialerLeadRow).filter(DialerLeadRow.phone_number == phone_number).first()
            return _to_lead(row) if row else None

    # Queue queries

    def _due_callbacks_query(self, db: Session, due_before: datetime):
        return db.query(DialerLeadRow).filter(
            DialerLeadRow.status == LeadStatus.CALLBACK.value,
            DialerLeadRow.next_call_at <= due_before,
            _callable(),
        )

    def list_due_callbacks(self, due_before: datetime, limit: Optional[int] = None) -> List[DialerLead]:
        with self._session() as db:
            query = self._due_callbacks_query(db, due_before).order_by(DialerLeadRow.next_call_at.asc())
            if limit is not None:
                query = query.limit(limit)
            return [_to_lead(row) for row in query.all()]

    def count_due_callbacks(self, due_before: datetime) -> int:
        with self._session() as db:
            return self._due_callbacks_query(db, due_before).count()

    def list_queued(self, timezone: Optional[DialerTimezone], limit: int) -> List[DialerLead]:
        with self._session() as db:
            query = db.query(DialerLeadRow).filter(
                DialerLeadRow.status == LeadStatus.QUEUED.value,
                _callable(),
            )
            if timezone:
                query = query.filter(DialerLeadRow.timezone == timezone.value)
            query = query.order_by(
                DialerLeadRow.attempt_count.asc(),
                DialerLeadRow.created_at.asc(),
            ).limit(limit)
            return [_to_lead(row) for row in query.all()]

    def count_callable(
        self,
        statuses: Iterable[LeadStatus],
        timezone: Optional[DialerTimezone] = None
    ) -> int:
        with self._session() as db:
            query = db.query(DialerLeadRow).filter(
                DialerLeadRow.status.in_([status.value for status in statuses]),
                _callable(),
            )
            if timezone:
                query = query.filter(DialerLeadRow.timezone == timezone.value)
            return query.count()

    def count_by_status(self, status: LeadStatus) -> int:
        with self._session() as db:
            return db.query(DialerLeadRow).filter(DialerLeadRow.status == status.value).count()

    def count_demos_booked(self) -> int:
        with self._session() as db:
            return db.query(DialerLeadRow).filter(DialerLeadRow.demo_booked.is_(True)).count()

    # History and daily stats

    def count_history_on(self, call_date: date) -> int:
        with self._session() as db:
            return db.query(CallHistoryRow).filter(CallHistoryRow.call_date == call_date).count()

    def outcome_histogram(self, call_date: date) -> Dict[str, int]:
        with self._session() as db:
            rows = (
                db.query(CallHistoryRow.outcome, func.count(CallHistoryRow.id))
                .filter(CallHistoryRow.call_date == call_date)
                .group_by(CallHistoryRow.outcome)
                .all()
            )
            return {outcome: count for outcome, count in rows}

    def list_history(self, lead_id: str) -> List[CallHistoryEntry]:
        with self._session() as db:
            rows = (
                db.query(CallHistoryRow)
                .filter(CallHistoryRow.lead_id == lead_id)
                .order_by(CallHistoryRow.created_at.desc(), CallHistoryRow.attempt_number.desc())
                .all()
            )
            return [_to_history(row) for row in rows]

    def get_daily_stats(self, call_date: date) -> Optional[DailyCallStats]:
        with self._session() as db:
            row = db.get(DailyCallStatsRow, call_date)
            if row is None:
                return None
            return DailyCallStats(
                call_date=row.call_date,
                total_dials=row.total_dials,
                contacts=row.contacts,
                conversations=row.conversations,
                demos_booked=row.demos_booked,
            )

    # Writes

    def insert_lead(self, lead: DialerLead) -> DialerLead:
        values = {name: _column_value(value) for name, value in lead.model_dump().items()}
        for name in ("created_at", "updated_at"):
            if values.get(name) is None:
                values.pop(name, None)
        try:
            with self._session() as db:
                db.add(DialerLeadRow(**values))
        except IntegrityError as e:
            raise ConflictError(f"Phone number already exists: {lead.phone_number}") from e
        return lead

    def update_descriptive(self, lead_id: str, fields: Dict[str, Any]) -> bool:
        values = {
            name: _column_value(value)
            for name, value in fields.items()
            if name in DESCRIPTIVE_FIELDS or name == "updated_at"
        }
        if not values:
            return False

        with self._session() as db:
            updated = (
                db.query(DialerLeadRow)
                .filter(
                    DialerLeadRow.id == lead_id,
                    DialerLeadRow.status.notin_([status.value for status in TERMINAL_STATUSES]),
                )
                .update(values, synchronize_session=False)
            )
            return updated > 0

    def commit_disposition(self, lead_id: str, planner: DispositionPlanner) -> DispositionPlan:
        with self._session() as db:
            row = (
                db.query(DialerLeadRow)
                .filter(DialerLeadRow.id == lead_id)
                .with_for_update()
                .first()
            )
            if row is None:
                raise LeadNotFoundError(lead_id)

            plan = planner(_to_lead(row))

            for name, value in plan.lead_changes.items():
                setattr(row, name, _column_value(value))

            history = {name: _column_value(value) for name, value in plan.history.model_dump().items()}
            db.add(CallHistoryRow(**history))

            self._increment_daily_stats(db, plan.history.call_date, plan.stats_delta)
            return plan

    def _increment_daily_stats(self, db: Session, call_date: date, delta: DailyStatsDelta) -> None:
        dialect = db.get_bind().dialect.name
        if dialect == "postgresql":
            insert = pg_insert
        elif dialect == "sqlite":
            insert = sqlite_insert
        else:
            # No native upsert: lock and increment
            row = db.query(DailyCallStatsRow).filter(DailyCallStatsRow.call_date == call_date).with_for_update().first()
            if row is None:
                row = DailyCallStatsRow(call_date=call_date, total_dials=0, contacts=0, conversations=0, demos_booked=0)
                db.add(row)
            row.total_dials += delta.total_dials
            row.contacts += delta.contacts
            row.conversations += delta.conversations
            row.demos_booked += delta.demos_booked
            return

        table = DailyCallStatsRow.__table__
        stmt = insert(table).values(call_date=call_date, **delta.model_dump())
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.call_date],
            set_={
                "total_dials": table.c.total_dials + stmt.excluded.total_dials,
                "contacts": table.c.contacts + stmt.excluded.contacts,
                "conversations": table.c.conversations + stmt.excluded.conversations,
                "demos_booked": table.c.demos_booked + stmt.excluded.demos_booked,
            },
        )
        db.execute(stmt)

    # Lead browser

    def list_leads(self, filters: LeadFilter) -> Tuple[List[DialerLead], int]:
        with self._session() as db:
            query = db.query(DialerLeadRow)
            if filters.status:
                query = query.filter(DialerLeadRow.status == filters.status.value)
            if filters.timezone:
                query = query.filter(DialerLeadRow.timezone == filters.timezone.value)
            if filters.search:
                pattern = f"%{filters.search}%"
                query = query.filter(or_(
                    DialerLeadRow.business_name.ilike(pattern),
                    DialerLeadRow.owner_name.ilike(pattern),
                    DialerLeadRow.phone_number.ilike(pattern),
                ))

            count = query.count()
            rows = (
                query.order_by(DialerLeadRow.created_at.desc())
                .offset(filters.offset)
                .limit(filters.limit)
                .all()
            )
            return [_to_lead(row) for row in rows], count

    def update_lead(self, lead_id: str, fields: Dict[str, Any]) -> Optional[DialerLead]:
        with self._session() as db:
            row = db.get(DialerLeadRow, lead_id)
            if row is None:
                return None
            for name, value in fields.items():
                if name in _EDITABLE_FIELDS:
                    setattr(row, name, _column_value(value))
            db.flush()
            return _to_lead(row)

    def delete_lead(self, lead_id: str) -> bool:
        with self._session() as db:
            row = db.get(DialerLeadRow, lead_id)
            if row is None:
                return False
            db.delete(row)
            return True
