"""
Disposition Service
Applies a reported call outcome to a lead
"""
import logging
import random
from datetime import datetime
from typing import Callable, Optional, Union

from powerdialer.domain.interfaces.lead_store import LeadStore
from powerdialer.domain.models.call_history import CallOutcome
from powerdialer.domain.models.calling_schedule import CallingSchedule
from powerdialer.domain.models.dialer_reports import DispositionResult
from powerdialer.domain.models.disposition import parse_outcome, plan_disposition
from powerdialer.domain.models.lead import DialerLead
from powerdialer.utils.time_utils import Clock, utc_now, ensure_utc

logger = logging.getLogger(__name__)


class DispositionService:
    """
    State machine over call attempts.

    The transition is planned from the lead as read inside the store's
    serialization point, so the attempt increment is never computed from
    stale data. Retry jitter comes from `jitter` (values in [0, 1)).
    """

    def __init__(
        self,
        store: LeadStore,
        schedule: Optional[CallingSchedule] = None,
        clock: Clock = utc_now,
        jitter: Callable[[], float] = random.random,
    ):
        self._store = store
        self._schedule = schedule or CallingSchedule.default()
        self._clock = clock
        self._jitter = jitter

    def apply_disposition(
        self,
        lead_id: str,
        outcome: Union[str, CallOutcome],
        notes: Optional[str] = None,
        demo_date: Optional[datetime] = None,
        callback_at: Optional[datetime] = None,
    ) -> DispositionResult:
        """
        Record an outcome for a lead.

        Raises:
            InvalidArgumentError: Unrecognized outcome (nothing is written)
            LeadNotFoundError: Unknown lead id (nothing is written)
        """
        parsed = parse_outcome(outcome)
        now = self._clock()
        jitter = self._jitter()
        tz = self._schedule.tzinfo()

        def planner(lead: DialerLead):
            return plan_disposition(
                lead,
                parsed,
                now=now,
                jitter=jitter,
                notes=notes,
                demo_date=ensure_utc(demo_date),
                callback_at=ensure_utc(callback_at),
                tz=tz,
            )

        plan = self._store.commit_disposition(lead_id, planner)

        logger.info(
            f"Disposition {parsed.value} for lead {lead_id}: "
            f"status={plan.new_status.value}, attempt={plan.attempt_count}"
        )

        return DispositionResult(new_status=plan.new_status, attempt_count=plan.attempt_count)
