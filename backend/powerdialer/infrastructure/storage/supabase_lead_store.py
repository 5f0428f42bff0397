"""
Supabase Lead Store
LeadStore over the Supabase REST API (supabase-py)

Supabase cannot compare two columns in a filter, so every callable query
goes through the `dialer_callable_leads` view (attempt_count < max_attempts).
Dispositions use compare-and-swap on attempt_count instead of row locks.
"""
import logging
from collections import Counter
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

import httpx
from postgrest.exceptions import APIError
from supabase import Client

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
    CALLABLE_STATUSES,
    DESCRIPTIVE_FIELDS,
    DialerLead,
    DialerTimezone,
    LeadFilter,
    LeadStatus,
)

logger = logging.getLogger(__name__)

LEADS_TABLE = "dialer_leads"
CALLABLE_VIEW = "dialer_callable_leads"
HISTORY_TABLE = "dialer_call_history"
STATS_TABLE = "daily_call_stats"

UNIQUE_VIOLATION = "23505"

_EDITABLE_FIELDS = set(DESCRIPTIVE_FIELDS) | {"max_attempts", "updated_at"}
_STAT_COUNTERS = ("total_dials", "contacts", "conversations", "demos_booked")


def _serialize(values: Dict[str, Any]) -> Dict[str, Any]:
    """JSON-safe column values"""
    result = {}
    for key, value in values.items():
        if isinstance(value, Enum):
            value = value.value
        elif isinstance(value, (datetime, date, time)):
            value = value.isoformat()
        result[key] = value
    return result


def _search_term(search: str) -> str:
    # PostgREST or-filter syntax reserves these
    return "".join(ch for ch in search if ch not in ",()")


class SupabaseLeadStore(LeadStore):
    """Lead store backed by the Supabase PostgREST API"""

    MAX_CAS_RETRIES = 3

    def __init__(self, client: Client):
        self.supabase = client

    def _execute(self, query):
        try:
            return query.execute()
        except httpx.HTTPError as e:
            logger.error(f"Supabase unavailable: {e}")
            raise UpstreamUnavailableError(f"Supabase unavailable: {e}") from e

    def _count(self, query) -> int:
        response = self._execute(query)
        return response.count or 0

    # Point lookups

    def get_lead(self, lead_id: str) -> Optional[DialerLead]:
        response = self._execute(
            self.supabase.table(LEADS_TABLE).select("*").eq("id", lead_id).limit(1)
        )
        return DialerLead.model_validate(response.data[0]) if response.data else None

    def find_by_phone(self, phone_number: str) -> Optional[DialerLead]:
        response = self._execute(
            self.supabase.table(LEADS_TABLE).select("*").eq("phone_number", phone_number).limit(1)
        )
        return DialerLead.model_validate(response.data[0]) if response.data else None

    # Queue queries

    def list_due_callbacks(self, due_before: datetime, limit: Optional[int] = None) -> List[DialerLead]:
        query = (
            self.supabase.table(CALLABLE_VIEW)
            .select("*")
            .eq("status", LeadStatus.CALLBACK.value)
            .lte("next_call_at", due_before.isoformat())
            .order("next_call_at")
        )
        if limit is not None:
            query = query.limit(limit)
        response = self._execute(query)
        return [DialerLead.model_validate(row) for row in response.data]

    def count_due_callbacks(self, due_before: datetime) -> int:
        return self._count(
            self.supabase.table(CALLABLE_VIEW)
            .select("id", count="exact")
            .eq("status", LeadStatus.CALLBACK.value)
            .lte("next_call_at", due_before.isoformat())
        )

    def list_queued(self, timezone: Optional[DialerTimezone], limit: int) -> List[DialerLead]:
        query = (
            self.supabase.table(CALLABLE_VIEW)
            .select("*")
            .eq("status", LeadStatus.QUEUED.value)
        )
        if timezone:
            query = query.eq("timezone", timezone.value)
        response = self._execute(
            query.order("attempt_count").order("created_at").limit(limit)
        )
        return [DialerLead.model_validate(row) for row in response.data]

    def count_callable(
        self,
        statuses: Iterable[LeadStatus],
        timezone: Optional[DialerTimezone] = None
    ) -> int:
        query = (
            self.supabase.table(CALLABLE_VIEW)
            .select("id", count="exact")
            .in_("status", sorted(status.value for status in statuses))
        )
        if timezone:
            query = query.eq("timezone", timezone.value)
        return self._count(query)

    def count_by_status(self, status: LeadStatus) -> int:
        return self._count(
            self.supabase.table(LEADS_TABLE).select("id", count="exact").eq("status", status.value)
        )

    def count_demos_booked(self) -> int:
        return self._count(
            self.supabase.table(LEADS_TABLE).select("id", count="exact").eq("demo_booked", True)
        )

    # History and daily stats

    def count_history_on(self, call_date: date) -> int:
        return self._count(
            self.supabase.table(HISTORY_TABLE)
            .select("id", count="exact")
            .eq("call_date", call_date.isoformat())
        )

    def outcome_histogram(self, call_date: date) -> Dict[str, int]:
        response = self._execute(
            self.supabase.table(HISTORY_TABLE)
            .select("outcome")
            .eq("call_date", call_date.isoformat())
        )
        return dict(Counter(row["outcome"] for row in response.data))

    def list_history(self, lead_id: str) -> List[CallHistoryEntry]:
        response = self._execute(
            self.supabase.table(HISTORY_TABLE)
            .select("*")
            .eq("lead_id", lead_id)
            .order("created_at", desc=True)
        )
        return [CallHistoryEntry.model_validate(row) for row in response.data]

    def get_daily_stats(self, call_date: date) -> Optional[DailyCallStats]:
        response = self._execute(
            self.supabase.table(STATS_TABLE).select("*").eq("call_date", call_date.isoformat()).limit(1)
        )
        return DailyCallStats.model_validate(response.data[0]) if response.data else None

    # Writes

    def insert_lead(self, lead: DialerLead) -> DialerLead:
        values = _serialize(lead.model_dump())
        for name in ("created_at", "updated_at"):
            if values.get(name) is None:
                values.pop(name, None)

        try:
            self._execute(self.supabase.table(LEADS_TABLE).insert(values))
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                raise ConflictError(f"Phone number already exists: {lead.phone_number}") from e
            raise
        return lead

    def update_descriptive(self, lead_id: str, fields: Dict[str, Any]) -> bool:
        values = {
            name: value for name, value in fields.items()
            if name in DESCRIPTIVE_FIELDS or name == "updated_at"
        }
        if not values:
            return False

        # Only while still active
        response = self._execute(
            self.supabase.table(LEADS_TABLE)
            .update(_serialize(values))
            .eq("id", lead_id)
            .in_("status", sorted(status.value for status in CALLABLE_STATUSES))
        )
        return bool(response.data)

    def commit_disposition(self, lead_id: str, planner: DispositionPlanner) -> DispositionPlan:
        for attempt in range(1, self.MAX_CAS_RETRIES + 1):
            lead = self.get_lead(lead_id)
            if lead is None:
                raise LeadNotFoundError(lead_id)

            plan = planner(lead)

            response = self._execute(
                self.supabase.table(LEADS_TABLE)
                .update(_serialize(plan.lead_changes))
                .eq("id", lead_id)
                .eq("attempt_count", lead.attempt_count)
            )
            if response.data:
                break

            logger.info(f"Disposition race on lead {lead_id} (attempt {attempt}), retrying")
        else:
            raise ConflictError(f"Lead {lead_id} changed concurrently; disposition not recorded")

        self._execute(
            self.supabase.table(HISTORY_TABLE).insert(_serialize(plan.history.model_dump()))
        )
        if not self._increment_daily_stats(plan.history.call_date, plan.stats_delta):
            # Lead and history are already committed, so the disposition stands
            logger.error(
                f"Disposition for lead {lead_id} recorded but daily stats increment lost: "
                f"{plan.stats_delta.model_dump()}"
            )
        return plan

    def _increment_daily_stats(self, call_date: date, delta: DailyStatsDelta) -> bool:
        """Compare-and-swap the day's counters; False when every attempt lost the race"""
        key = call_date.isoformat()

        for _ in range(self.MAX_CAS_RETRIES):
            response = self._execute(
                self.supabase.table(STATS_TABLE).select("*").eq("call_date", key).limit(1)
            )

            if not response.data:
                try:
                    self._execute(
                        self.supabase.table(STATS_TABLE).insert({"call_date": key, **delta.model_dump()})
                    )
                    return True
                except APIError as e:
                    if e.code != UNIQUE_VIOLATION:
                        raise
                    continue

            current = response.data[0]
            increments = delta.model_dump()
            values = {name: (current.get(name) or 0) + increments[name] for name in _STAT_COUNTERS}

            updated = self._execute(
                self.supabase.table(STATS_TABLE)
                .update(values)
                .eq("call_date", key)
                .eq("total_dials", current.get("total_dials") or 0)
            )
            if updated.data:
                return True

        logger.warning(f"Daily stats for {key} not updated after {self.MAX_CAS_RETRIES} attempts")
        return False

    # Lead browser

    def list_leads(self, filters: LeadFilter) -> Tuple[List[DialerLead], int]:
        query = self.supabase.table(LEADS_TABLE).select("*", count="exact")
        if filters.status:
            query = query.eq("status", filters.status.value)
        if filters.timezone:
            query = query.eq("timezone", filters.timezone.value)
        if filters.search:
            term = _search_term(filters.search)
            query = query.or_(
                f"business_name.ilike.%{term}%,owner_name.ilike.%{term}%,phone_number.ilike.%{term}%"
            )

        response = self._execute(
            query.order("created_at", desc=True)
            .range(filters.offset, filters.offset + filters.limit - 1)
        )
        leads = [DialerLead.model_validate(row) for row in response.data]
        return leads, response.count or 0

    def update_lead(self, lead_id: str, fields: Dict[str, Any]) -> Optional[DialerLead]:
        values = {name: value for name, value in fields.items() if name in _EDITABLE_FIELDS}
        response = self._execute(
            self.supabase.table(LEADS_TABLE).update(_serialize(values)).eq("id", lead_id)
        )
        return DialerLead.model_validate(response.data[0]) if response.data else None

    def delete_lead(self, lead_id: str) -> bool:
        response = self._execute(
            self.supabase.table(LEADS_TABLE).delete().eq("id", lead_id)
        )
        return bool(response.data)
