"""
Disposition Model
Outcome transition table and the plan computed for one disposition
"""
from dataclasses import dataclass
from pydantic import BaseModel
from typing import Optional, Dict, Any, Union
from datetime import datetime, timedelta, tzinfo
from enum import Enum

from powerdialer.core.exceptions import InvalidArgumentError
from powerdialer.domain.models.call_history import (
    CallOutcome,
    CallHistoryEntry,
    DailyStatsDelta,
)
from powerdialer.domain.models.lead import DialerLead, LeadStatus


class TransitionKind(str, Enum):
    """How an outcome moves a lead"""
    RETRY = "retry"          # Back to the queue, archived at the attempt cap
    TERMINAL = "terminal"    # Completed, never surfaced again
    CALLBACK = "callback"    # Scheduled callback


@dataclass(frozen=True)
class OutcomeTransition:
    kind: TransitionKind
    delay_days: float = 0.0
    jitter_days: float = 0.0
    flag: Optional[str] = None


# Every CallOutcome must have an entry
OUTCOME_TRANSITIONS: Dict[CallOutcome, OutcomeTransition] = {
    CallOutcome.NO_ANSWER: OutcomeTransition(TransitionKind.RETRY, delay_days=2, jitter_days=1),
    CallOutcome.VOICEMAIL: OutcomeTransition(TransitionKind.RETRY, delay_days=2, jitter_days=1),
    CallOutcome.GATEKEEPER: OutcomeTransition(TransitionKind.RETRY, delay_days=2, jitter_days=1),
    CallOutcome.CONVERSATION: OutcomeTransition(TransitionKind.RETRY, delay_days=3),
    CallOutcome.DEMO_BOOKED: OutcomeTransition(TransitionKind.TERMINAL, flag="demo_booked"),
    CallOutcome.NOT_INTERESTED: OutcomeTransition(TransitionKind.TERMINAL, flag="not_interested"),
    CallOutcome.WRONG_NUMBER: OutcomeTransition(TransitionKind.TERMINAL, flag="wrong_number"),
    CallOutcome.CALLBACK: OutcomeTransition(TransitionKind.CALLBACK, delay_days=1),
}


def parse_outcome(value: Union[str, CallOutcome, None]) -> CallOutcome:
    """Resolve a raw outcome string, raising InvalidArgumentError if unknown."""
    if isinstance(value, CallOutcome):
        return value
    try:
        return CallOutcome((value or "").strip().lower())
    except ValueError:
        raise InvalidArgumentError(f"Unrecognized outcome: {value!r}")


def format_short_date(moment: datetime) -> str:
    """en-US short form, e.g. 'Mar 1, 2:05 PM'"""
    hour = moment.hour % 12 or 12
    return f"{moment:%b} {moment.day}, {hour}:{moment:%M} {moment:%p}"


class NoteEntry(BaseModel):
    """One line of a lead's append-only notes log"""
    timestamp: datetime
    outcome: str
    notes: Optional[str] = None

    def render(self, tz: Optional[tzinfo] = None) -> str:
        moment = self.timestamp.astimezone(tz) if tz else self.timestamp
        prefix = f"[{format_short_date(moment)}] {self.outcome}"
        return f"{prefix}: {self.notes}" if self.notes else prefix

    def append_to(self, existing: Optional[str], tz: Optional[tzinfo] = None) -> str:
        line = self.render(tz)
        return f"{existing}\n{line}" if existing else line


class DispositionPlan(BaseModel):
    """Everything one disposition writes, computed from the lead as last read"""
    lead_id: str
    new_status: LeadStatus
    attempt_count: int
    lead_changes: Dict[str, Any]
    history: CallHistoryEntry
    stats_delta: DailyStatsDelta


def plan_disposition(
    lead: DialerLead,
    outcome: CallOutcome,
    now: datetime,
    jitter: float,
    notes: Optional[str] = None,
    demo_date: Optional[datetime] = None,
    callback_at: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> DispositionPlan:
    """
    Compute the new lead state, history row and stats increments.

    Args:
        lead: Lead as freshly read from the store
        outcome: Reported outcome
        now: Disposition time (timezone-aware)
        jitter: Random value in [0, 1) spreading retry times
        notes: Operator notes (optional)
        demo_date: Demo time for demo_booked (optional)
        callback_at: Requested callback time (optional)
        tz: Timezone for note stamps and the history call date

    Returns:
        DispositionPlan to be committed atomically by the store
    """
    transition = OUTCOME_TRANSITIONS[outcome]
    new_attempt_count = lead.attempt_count + 1
    notes = notes.strip() if notes and notes.strip() else None

    changes: Dict[str, Any] = {
        "demo_booked": lead.demo_booked,
        "demo_date": lead.demo_date,
        "not_interested": lead.not_interested,
        "wrong_number": lead.wrong_number,
    }

    if transition.kind == TransitionKind.RETRY:
        delay = transition.delay_days + transition.jitter_days * jitter
        next_call_at = now + timedelta(days=delay)
        if new_attempt_count >= lead.max_attempts:
            new_status = LeadStatus.ARCHIVED
        else:
            new_status = LeadStatus.QUEUED
    elif transition.kind == TransitionKind.TERMINAL:
        new_status = LeadStatus.COMPLETED
        next_call_at = None
        changes[transition.flag] = True
        if outcome == CallOutcome.DEMO_BOOKED:
            changes["demo_date"] = demo_date
    else:
        new_status = LeadStatus.CALLBACK
        next_call_at = callback_at or now + timedelta(days=transition.delay_days)

    entry = NoteEntry(timestamp=now, outcome=outcome.value, notes=notes)
    local_now = now.astimezone(tz) if tz else now

    changes.update({
        "status": new_status,
        "attempt_count": new_attempt_count,
        "last_called_at": now,
        "last_outcome": outcome,
        "next_call_at": next_call_at,
        "notes": entry.append_to(lead.notes, tz),
        "updated_at": now,
    })

    history = CallHistoryEntry(
        lead_id=lead.id,
        attempt_number=new_attempt_count,
        outcome=outcome,
        notes=notes,
        demo_date=demo_date,
        callback_at=callback_at,
        call_date=local_now.date(),
        call_time=local_now.time().replace(tzinfo=None, microsecond=0),
        created_at=now,
    )

    return DispositionPlan(
        lead_id=lead.id,
        new_status=new_status,
        attempt_count=new_attempt_count,
        lead_changes=changes,
        history=history,
        stats_delta=DailyStatsDelta.for_outcome(outcome),
    )
