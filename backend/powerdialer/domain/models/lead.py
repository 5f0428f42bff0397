"""
Lead Domain Models
"""
from pydantic import BaseModel, Field
from typing import Optional, Set
from datetime import datetime
from enum import Enum
import uuid

from powerdialer.domain.models.call_history import CallOutcome


class DialerTimezone(str, Enum):
    """Calling time-zone buckets"""
    ET = "ET"
    CT = "CT"
    MT = "MT"
    PT = "PT"


class LeadStatus(str, Enum):
    """Call state of a lead"""
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    CALLBACK = "callback"
    COMPLETED = "completed"
    ARCHIVED = "archived"


DEFAULT_MAX_ATTEMPTS = 5

# Leads in these states are never surfaced or touched by reconciliation
TERMINAL_STATUSES: Set[LeadStatus] = {LeadStatus.COMPLETED, LeadStatus.ARCHIVED}

# Counted as "callable" when under the attempt cap
CALLABLE_STATUSES: Set[LeadStatus] = {
    LeadStatus.QUEUED,
    LeadStatus.CALLBACK,
    LeadStatus.IN_PROGRESS,
}

# Counted in the per-zone breakdown
BREAKDOWN_STATUSES: Set[LeadStatus] = {LeadStatus.QUEUED, LeadStatus.CALLBACK}

# Fields reconciliation and manual edits may overwrite
DESCRIPTIVE_FIELDS = (
    "business_name",
    "owner_name",
    "first_name",
    "website",
    "region",
    "timezone",
    "sheet_row_id",
)


class DialerLead(BaseModel):
    """One prospect in the calling pool"""

    # Identity
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    phone_number: str

    # Descriptive
    business_name: Optional[str] = None
    owner_name: Optional[str] = None
    first_name: Optional[str] = None
    website: Optional[str] = None
    region: Optional[str] = None
    timezone: Optional[DialerTimezone] = None

    # Call state
    status: LeadStatus = LeadStatus.QUEUED
    attempt_count: int = Field(default=0, ge=0)
    max_attempts: int = Field(default=DEFAULT_MAX_ATTEMPTS, ge=1)
    last_called_at: Optional[datetime] = None
    next_call_at: Optional[datetime] = None
    last_outcome: Optional[CallOutcome] = None
    demo_booked: bool = False
    demo_date: Optional[datetime] = None
    not_interested: bool = False
    wrong_number: bool = False

    # Provenance
    notes: Optional[str] = None
    import_batch: Optional[str] = None
    sheet_row_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class LeadUpdate(BaseModel):
    """Manual edit of a lead (descriptive fields and attempt cap only)"""
    business_name: Optional[str] = None
    owner_name: Optional[str] = None
    first_name: Optional[str] = None
    website: Optional[str] = None
    region: Optional[str] = None
    max_attempts: Optional[int] = Field(default=None, ge=1)


class LeadFilter(BaseModel):
    """Listing filters for the lead browser"""
    status: Optional[LeadStatus] = None
    timezone: Optional[DialerTimezone] = None
    search: Optional[str] = None
    limit: int = Field(default=50, ge=1, le=500)
    offset: int = Field(default=0, ge=0)
