"""
Lead Store Interface
Abstract base class for the persistence layer behind the dialer
"""
from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Callable, Dict, Any, Iterable, List, Optional, Tuple

from powerdialer.domain.models.call_history import CallHistoryEntry, DailyCallStats
from powerdialer.domain.models.disposition import DispositionPlan
from powerdialer.domain.models.lead import (
    DialerLead,
    DialerTimezone,
    LeadFilter,
    LeadStatus,
)

DispositionPlanner = Callable[[DialerLead], DispositionPlan]


class LeadStore(ABC):
    """
    The only component that reads or writes lead, call history and
    daily stats rows.

    Every "callable" query applies the attempt cap
    (attempt_count < max_attempts). Implementations raise
    UpstreamUnavailableError when the backing store cannot be reached.
    """

    # Point lookups

    @abstractmethod
    def get_lead(self, lead_id: str) -> Optional[DialerLead]:
        """Lead by id, or None"""
        pass

    @abstractmethod
    def find_by_phone(self, phone_number: str) -> Optional[DialerLead]:
        """Lead by exact normalized phone, or None"""
        pass

    # Queue queries

    @abstractmethod
    def list_due_callbacks(self, due_before: datetime, limit: Optional[int] = None) -> List[DialerLead]:
        """Callback leads with next_call_at <= due_before, soonest first"""
        pass

    @abstractmethod
    def list_queued(self, timezone: Optional[DialerTimezone], limit: int) -> List[DialerLead]:
        """Queued leads, fewest attempts first then oldest first"""
        pass

    @abstractmethod
    def count_callable(
        self,
        statuses: Iterable[LeadStatus],
        timezone: Optional[DialerTimezone] = None
    ) -> int:
        """Leads in any of `statuses` under the attempt cap"""
        pass

    @abstractmethod
    def count_due_callbacks(self, due_before: datetime) -> int:
        """Number of leads list_due_callbacks would return without a limit"""
        pass

    @abstractmethod
    def count_by_status(self, status: LeadStatus) -> int:
        """All leads in a status, regardless of attempts"""
        pass

    @abstractmethod
    def count_demos_booked(self) -> int:
        """Leads flagged demo_booked"""
        pass

    # History and daily stats

    @abstractmethod
    def count_history_on(self, call_date: date) -> int:
        """Call history rows dated call_date"""
        pass

    @abstractmethod
    def outcome_histogram(self, call_date: date) -> Dict[str, int]:
        """Outcome -> count for call history dated call_date"""
        pass

    @abstractmethod
    def list_history(self, lead_id: str) -> List[CallHistoryEntry]:
        """Call history for a lead, newest first"""
        pass

    @abstractmethod
    def get_daily_stats(self, call_date: date) -> Optional[DailyCallStats]:
        """Daily snapshot row, or None if nothing was recorded that day"""
        pass

    # Writes

    @abstractmethod
    def insert_lead(self, lead: DialerLead) -> DialerLead:
        """
        Insert a new lead.

        Raises:
            ConflictError: phone_number already exists
        """
        pass

    @abstractmethod
    def update_descriptive(self, lead_id: str, fields: Dict[str, Any]) -> bool:
        """
        Overwrite descriptive fields of a lead that is still active.

        Returns:
            False if the lead is missing or already terminal (nothing written)
        """
        pass

    @abstractmethod
    def commit_disposition(self, lead_id: str, planner: DispositionPlanner) -> DispositionPlan:
        """
        Read the lead, plan the disposition and write lead, history and
        daily stats as one unit. Concurrent dispositions on the same lead
        must not lose an attempt increment.

        Raises:
            LeadNotFoundError: lead_id does not resolve
        """
        pass

    # Lead browser

    @abstractmethod
    def list_leads(self, filters: LeadFilter) -> Tuple[List[DialerLead], int]:
        """One page of leads (newest first) and the total matching count"""
        pass

    @abstractmethod
    def update_lead(self, lead_id: str, fields: Dict[str, Any]) -> Optional[DialerLead]:
        """Apply a manual edit, returning the updated lead or None if missing"""
        pass

    @abstractmethod
    def delete_lead(self, lead_id: str) -> bool:
        """Delete a lead, returning False if it did not exist"""
        pass
