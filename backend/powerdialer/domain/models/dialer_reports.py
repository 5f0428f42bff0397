"""
Dialer Report Models
Read projections and request/response shapes shared by services and API
"""
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from typing import Dict, List, Optional

from powerdialer.domain.models.call_history import CallHistoryEntry
from powerdialer.domain.models.lead import DialerLead, DialerTimezone, LeadStatus


def empty_zone_breakdown() -> Dict[DialerTimezone, int]:
    return {tz: 0 for tz in DialerTimezone}


class QueueSnapshot(BaseModel):
    """Ordered work list for one calling session"""
    leads: List[DialerLead] = Field(default_factory=list)
    total_today: int = 0
    completed_today: int = 0
    current_timezone: Optional[DialerTimezone] = None
    current_hour_block: Optional[str] = None
    callbacks_due: List[DialerLead] = Field(default_factory=list)
    breakdown_by_timezone: Dict[DialerTimezone, int] = Field(default_factory=empty_zone_breakdown)


class HourBreakdown(BaseModel):
    """Callable leads for one schedule block"""
    hour: str
    timezone: DialerTimezone
    count: int


class DailyDialerStats(BaseModel):
    """Daily dashboard projection"""
    total_leads: int = 0
    completed_today: int = 0
    callbacks_due_today: int = 0
    breakdown_by_timezone: Dict[DialerTimezone, int] = Field(default_factory=empty_zone_breakdown)
    breakdown_by_hour: List[HourBreakdown] = Field(default_factory=list)
    today_outcomes: Dict[str, int] = Field(default_factory=dict)
    total_demos: int = 0
    total_completed: int = 0
    total_archived: int = 0

    # Daily snapshot counters
    total_dials: int = 0
    contacts: int = 0
    conversations: int = 0
    demos_booked: int = 0


class DispositionResult(BaseModel):
    """Result returned to the operator after a disposition"""
    new_status: LeadStatus
    attempt_count: int


class ReconciliationRow(BaseModel):
    """One row from an external lead source"""
    model_config = ConfigDict(populate_by_name=True)

    region: Optional[str] = Field(default=None, validation_alias=AliasChoices("region", "state"))
    business_name: Optional[str] = None
    phone_number: Optional[str] = Field(default=None, validation_alias=AliasChoices("phone_number", "phone"))
    owner_name: Optional[str] = None
    first_name: Optional[str] = None
    website: Optional[str] = None

    # Set by sheet-backed sources
    sheet_row_id: Optional[str] = None
    sheet_outcome: Optional[str] = None
    sheet_notes: Optional[str] = None


class ImportResult(BaseModel):
    """Counts for one reconciliation batch"""
    total_rows: int = 0
    imported: int = 0
    duplicates: int = 0
    updated: int = 0
    skipped: int = 0
    errors: List[str] = Field(default_factory=list)


class LeadDetail(BaseModel):
    """A lead with its call history (newest first)"""
    lead: DialerLead
    history: List[CallHistoryEntry] = Field(default_factory=list)


class LeadPage(BaseModel):
    """One page of the lead browser"""
    leads: List[DialerLead] = Field(default_factory=list)
    count: int = 0
