"""
Dialer Stats Service
Daily dashboard aggregation
"""
import logging
from datetime import datetime
from typing import Optional

from powerdialer.domain.interfaces.lead_store import LeadStore
from powerdialer.domain.models.calling_schedule import CallingSchedule
from powerdialer.domain.models.dialer_reports import (
    DailyDialerStats,
    HourBreakdown,
    empty_zone_breakdown,
)
from powerdialer.domain.models.lead import (
    BREAKDOWN_STATUSES,
    CALLABLE_STATUSES,
    DialerTimezone,
    LeadStatus,
)
from powerdialer.utils.time_utils import Clock, utc_now, ensure_utc

logger = logging.getLogger(__name__)


class DialerStatsService:
    """Pure read over the lead store; nothing is written."""

    def __init__(
        self,
        store: LeadStore,
        schedule: Optional[CallingSchedule] = None,
        clock: Clock = utc_now,
    ):
        self._store = store
        self._schedule = schedule or CallingSchedule.default()
        self._clock = clock

    def get_stats(self, now: Optional[datetime] = None) -> DailyDialerStats:
        now = ensure_utc(now) if now else self._clock()
        today = self._schedule.reference_date(now)

        breakdown = empty_zone_breakdown()
        for tz in DialerTimezone:
            breakdown[tz] = self._store.count_callable(BREAKDOWN_STATUSES, timezone=tz)

        # Hour labels follow the configured schedule
        by_hour = [
            HourBreakdown(hour=block.label, timezone=block.timezone, count=breakdown[block.timezone])
            for block in sorted(self._schedule.blocks, key=lambda b: b.hour)
        ]

        stats = DailyDialerStats(
            total_leads=self._store.count_callable(CALLABLE_STATUSES),
            completed_today=self._store.count_history_on(today),
            callbacks_due_today=self._store.count_due_callbacks(self._schedule.end_of_day(now)),
            breakdown_by_timezone=breakdown,
            breakdown_by_hour=by_hour,
            today_outcomes=self._store.outcome_histogram(today),
            total_demos=self._store.count_demos_booked(),
            total_completed=self._store.count_by_status(LeadStatus.COMPLETED),
            total_archived=self._store.count_by_status(LeadStatus.ARCHIVED),
        )

        snapshot = self._store.get_daily_stats(today)
        if snapshot:
            stats.total_dials = snapshot.total_dials
            stats.contacts = snapshot.contacts
            stats.conversations = snapshot.conversations
            stats.demos_booked = snapshot.demos_booked

        logger.debug(f"Stats for {today}: {stats.total_leads} callable, {stats.completed_today} called")
        return stats
