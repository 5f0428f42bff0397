"""Domain models"""

# Lead models
from .lead import (
    DialerTimezone,
    LeadStatus,
    DialerLead,
    LeadUpdate,
    LeadFilter,
    TERMINAL_STATUSES,
    CALLABLE_STATUSES,
)

# Call history models
from .call_history import (
    CallOutcome,
    CallHistoryEntry,
    DailyCallStats,
    DailyStatsDelta,
)

# Scheduling
from .calling_schedule import (
    ScheduleBlock,
    CallingSchedule,
)

# Disposition
from .disposition import (
    NoteEntry,
    DispositionPlan,
    OUTCOME_TRANSITIONS,
    plan_disposition,
    parse_outcome,
)

# Reports
from .dialer_reports import (
    QueueSnapshot,
    DailyDialerStats,
    HourBreakdown,
    DispositionResult,
    ReconciliationRow,
    ImportResult,
    LeadDetail,
    LeadPage,
)

__all__ = [
    # Leads
    "DialerTimezone",
    "LeadStatus",
    "DialerLead",
    "LeadUpdate",
    "LeadFilter",
    "TERMINAL_STATUSES",
    "CALLABLE_STATUSES",
    # Call history
    "CallOutcome",
    "CallHistoryEntry",
    "DailyCallStats",
    "DailyStatsDelta",
    # Scheduling
    "ScheduleBlock",
    "CallingSchedule",
    # Disposition
    "NoteEntry",
    "DispositionPlan",
    "OUTCOME_TRANSITIONS",
    "plan_disposition",
    "parse_outcome",
    # Reports
    "QueueSnapshot",
    "DailyDialerStats",
    "HourBreakdown",
    "DispositionResult",
    "ReconciliationRow",
    "ImportResult",
    "LeadDetail",
    "LeadPage",
]
