"""
Dialer Queue Service
Builds the ordered call list for an operator session
"""
import logging
from datetime import datetime
from typing import Optional, Union

from powerdialer.core.exceptions import InvalidArgumentError
from powerdialer.domain.interfaces.lead_store import LeadStore
from powerdialer.domain.models.calling_schedule import CallingSchedule
from powerdialer.domain.models.dialer_reports import QueueSnapshot, empty_zone_breakdown
from powerdialer.domain.models.lead import (
    BREAKDOWN_STATUSES,
    CALLABLE_STATUSES,
    DialerTimezone,
)
from powerdialer.utils.time_utils import Clock, utc_now, ensure_utc

logger = logging.getLogger(__name__)


class DialerQueueService:
    """
    Read-only projection of the lead store into a calling session.

    Ordering:
    1. Callbacks that are due (soonest first, capped so a long fresh
       queue can never starve them)
    2. Queued leads for the active timezone bucket, never-called first,
       then oldest first

    No lead appears twice. Nothing is written, so concurrent operators
    may be handed the same lead.
    """

    CALLBACK_LIMIT = 20
    DEFAULT_LIMIT = 50
    MAX_LIMIT = 500

    def __init__(
        self,
        store: LeadStore,
        schedule: Optional[CallingSchedule] = None,
        callback_limit: int = CALLBACK_LIMIT,
        default_limit: int = DEFAULT_LIMIT,
        max_limit: int = MAX_LIMIT,
        clock: Clock = utc_now,
    ):
        self._store = store
        self._schedule = schedule or CallingSchedule.default()
        self._callback_limit = callback_limit
        self._default_limit = default_limit
        self._max_limit = max_limit
        self._clock = clock

    @property
    def schedule(self) -> CallingSchedule:
        return self._schedule

    def resolve_zone(
        self,
        now: datetime,
        zone_override: Optional[Union[str, DialerTimezone]] = None
    ) -> Optional[DialerTimezone]:
        """Override zone if given, else the cascade bucket for `now`."""
        if zone_override:
            try:
                return DialerTimezone(str(zone_override).strip().upper())
            except ValueError:
                raise InvalidArgumentError(f"Unknown timezone bucket: {zone_override!r}")
        return self._schedule.current_bucket(now)

    def build_queue(
        self,
        now: Optional[datetime] = None,
        zone_override: Optional[Union[str, DialerTimezone]] = None,
        limit: Optional[int] = None,
    ) -> QueueSnapshot:
        """
        Assemble the call queue.

        Args:
            now: Evaluation time (default: clock)
            zone_override: Force a timezone bucket instead of the cascade
            limit: Max queued (non-callback) leads to return

        Returns:
            QueueSnapshot with leads, progress counters and breakdowns
        """
        now = ensure_utc(now) if now else self._clock()
        limit = self._default_limit if limit is None else limit
        if limit < 1 or limit > self._max_limit:
            raise InvalidArgumentError(f"limit must be between 1 and {self._max_limit}")

        block = self._schedule.current_block(now)
        zone = self.resolve_zone(now, zone_override)

        # 1. Callbacks due now or overdue
        callbacks = self._store.list_due_callbacks(now, limit=self._callback_limit)

        # 2. Fresh and retry leads for the active bucket
        queued = self._store.list_queued(zone, limit)

        # 3. Callbacks first, never the same lead twice
        seen_ids = {lead.id for lead in callbacks}
        leads = callbacks + [lead for lead in queued if lead.id not in seen_ids]

        # 4. Progress and breakdowns
        today = self._schedule.reference_date(now)
        completed_today = self._store.count_history_on(today)
        total_today = self._store.count_callable(CALLABLE_STATUSES)
        callbacks_due = self._store.list_due_callbacks(self._schedule.end_of_day(now))

        breakdown = empty_zone_breakdown()
        for tz in DialerTimezone:
            breakdown[tz] = self._store.count_callable(BREAKDOWN_STATUSES, timezone=tz)

        logger.debug(
            f"Queue built: {len(callbacks)} callbacks + {len(leads) - len(callbacks)} queued "
            f"(zone={zone.value if zone else None})"
        )

        return QueueSnapshot(
            leads=leads,
            total_today=total_today,
            completed_today=completed_today,
            current_timezone=zone,
            current_hour_block=block.label if block else None,
            callbacks_due=callbacks_due,
            breakdown_by_timezone=breakdown,
        )
