"""
Call History Domain Models
Outcomes, append-only history rows and daily counters
"""
from pydantic import BaseModel, Field
from typing import Optional, Set
from datetime import datetime, date, time
from enum import Enum
import uuid


class CallOutcome(str, Enum):
    """Outcome an operator reports after a dial"""
    NO_ANSWER = "no_answer"
    VOICEMAIL = "voicemail"
    GATEKEEPER = "gatekeeper"
    CONVERSATION = "conversation"
    DEMO_BOOKED = "demo_booked"
    NOT_INTERESTED = "not_interested"
    WRONG_NUMBER = "wrong_number"
    CALLBACK = "callback"


# Outcomes where a person was reached
CONTACT_OUTCOMES: Set[CallOutcome] = {
    CallOutcome.CONVERSATION,
    CallOutcome.DEMO_BOOKED,
    CallOutcome.CALLBACK,
    CallOutcome.NOT_INTERESTED,
}

# Outcomes where a real conversation happened
CONVERSATION_OUTCOMES: Set[CallOutcome] = {
    CallOutcome.CONVERSATION,
    CallOutcome.DEMO_BOOKED,
}


class CallHistoryEntry(BaseModel):
    """Immutable record of one disposition"""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    lead_id: str
    attempt_number: int = Field(..., ge=1, description="Attempt number (1-based)")
    outcome: CallOutcome
    notes: Optional[str] = None
    demo_date: Optional[datetime] = None
    callback_at: Optional[datetime] = None
    call_date: date
    call_time: time
    created_at: Optional[datetime] = None


class DailyStatsDelta(BaseModel):
    """Counter increments contributed by one disposition"""
    total_dials: int = 1
    contacts: int = 0
    conversations: int = 0
    demos_booked: int = 0

    @classmethod
    def for_outcome(cls, outcome: CallOutcome) -> "DailyStatsDelta":
        return cls(
            total_dials=1,
            contacts=1 if outcome in CONTACT_OUTCOMES else 0,
            conversations=1 if outcome in CONVERSATION_OUTCOMES else 0,
            demos_booked=1 if outcome == CallOutcome.DEMO_BOOKED else 0,
        )


class DailyCallStats(BaseModel):
    """Running counters for one calendar date"""
    call_date: date
    total_dials: int = 0
    contacts: int = 0
    conversations: int = 0
    demos_booked: int = 0

    def apply(self, delta: DailyStatsDelta) -> "DailyCallStats":
        return self.model_copy(update={
            "total_dials": self.total_dials + delta.total_dials,
            "contacts": self.contacts + delta.contacts,
            "conversations": self.conversations + delta.conversations,
            "demos_booked": self.demos_booked + delta.demos_booked,
        })
