"""
Unit Tests for DispositionService
Runs against the in-memory SQLite lead store
"""
from datetime import datetime, timedelta

import pytest
import pytz

from powerdialer.core.exceptions import InvalidArgumentError, LeadNotFoundError
from powerdialer.domain.models.call_history import CallOutcome
from powerdialer.domain.models.lead import DialerTimezone, LeadStatus
from powerdialer.domain.services.disposition_service import DispositionService
from powerdialer.domain.services.queue_service import DialerQueueService


@pytest.fixture
def service(sql_store, clock):
    return DispositionService(sql_store, clock=clock, jitter=lambda: 0.5)


class TestApplyDisposition:
    """Tests for apply_disposition"""

    def test_no_answer_requeues(self, service, sql_store, make_lead, fixed_now):
        lead = make_lead()

        result = service.apply_disposition(lead.id, "no_answer")

        assert result.new_status == LeadStatus.QUEUED
        assert result.attempt_count == 1

        stored = sql_store.get_lead(lead.id)
        assert stored.attempt_count == 1
        assert stored.last_outcome == CallOutcome.NO_ANSWER
        assert stored.last_called_at == fixed_now
        assert stored.next_call_at == fixed_now + timedelta(days=2.5)
        assert stored.notes == "[Mar 2, 10:30 AM] no_answer"

    def test_attempt_count_increments_exactly_once_per_disposition(self, service, sql_store, make_lead):
        lead = make_lead(max_attempts=10)
        outcomes = ["no_answer", "voicemail", "gatekeeper", "callback", "conversation"]

        counts = [service.apply_disposition(lead.id, o).attempt_count for o in outcomes]

        assert counts == [1, 2, 3, 4, 5]
        history = sql_store.list_history(lead.id)
        assert sorted(entry.attempt_number for entry in history) == [1, 2, 3, 4, 5]

    def test_archives_at_max_attempts(self, service, sql_store, make_lead):
        lead = make_lead(max_attempts=3)

        statuses = [service.apply_disposition(lead.id, "voicemail").new_status for _ in range(3)]

        assert statuses == [LeadStatus.QUEUED, LeadStatus.QUEUED, LeadStatus.ARCHIVED]
        stored = sql_store.get_lead(lead.id)
        assert stored.attempt_count == 3
        assert stored.status == LeadStatus.ARCHIVED

    def test_archived_lead_leaves_the_queue(self, service, sql_store, make_lead, clock):
        lead = make_lead(max_attempts=3, timezone=DialerTimezone.CT)
        other = make_lead(timezone=DialerTimezone.CT)
        queue = DialerQueueService(sql_store, clock=clock)

        for _ in range(3):
            service.apply_disposition(lead.id, "no_answer")

        snapshot = queue.build_queue()
        assert [queued.id for queued in snapshot.leads] == [other.id]
        assert snapshot.total_today == 1
        assert snapshot.breakdown_by_timezone[DialerTimezone.CT] == 1

    def test_demo_booked_scenario(self, service, sql_store, make_lead, fixed_now):
        lead = make_lead()
        demo = datetime(2026, 3, 5, 19, 0, tzinfo=pytz.UTC)

        result = service.apply_disposition(lead.id, "demo_booked", notes="Thursday 2pm", demo_date=demo)

        assert result.new_status == LeadStatus.COMPLETED
        assert result.attempt_count == 1

        stored = sql_store.get_lead(lead.id)
        assert stored.demo_booked is True
        assert stored.demo_date == demo
        assert stored.next_call_at is None

        history = sql_store.list_history(lead.id)
        assert len(history) == 1
        assert history[0].outcome == CallOutcome.DEMO_BOOKED
        assert history[0].demo_date == demo
        assert history[0].notes == "Thursday 2pm"

        stats = sql_store.get_daily_stats(fixed_now.date())
        assert (stats.total_dials, stats.contacts, stats.conversations, stats.demos_booked) == (1, 1, 1, 1)

    def test_naive_callback_time_treated_as_utc(self, service, sql_store, make_lead):
        lead = make_lead()

        service.apply_disposition(lead.id, "callback", callback_at=datetime(2026, 3, 3, 14, 0))

        stored = sql_store.get_lead(lead.id)
        assert stored.status == LeadStatus.CALLBACK
        assert stored.next_call_at == datetime(2026, 3, 3, 14, 0, tzinfo=pytz.UTC)

    def test_unknown_lead(self, service, sql_store):
        with pytest.raises(LeadNotFoundError):
            service.apply_disposition("missing", "no_answer")

    def test_unknown_outcome_writes_nothing(self, service, sql_store, make_lead, fixed_now):
        lead = make_lead()

        with pytest.raises(InvalidArgumentError):
            service.apply_disposition(lead.id, "hung_up")

        stored = sql_store.get_lead(lead.id)
        assert stored.attempt_count == 0
        assert stored.notes is None
        assert sql_store.list_history(lead.id) == []
        assert sql_store.get_daily_stats(fixed_now.date()) is None

    def test_daily_stats_accumulate(self, service, sql_store, make_lead, fixed_now):
        a, b, c = make_lead(), make_lead(), make_lead()

        service.apply_disposition(a.id, "no_answer")
        service.apply_disposition(b.id, "conversation")
        service.apply_disposition(c.id, "not_interested")

        stats = sql_store.get_daily_stats(fixed_now.date())
        assert stats.total_dials == 3
        assert stats.contacts == 2
        assert stats.conversations == 1
        assert stats.demos_booked == 0
