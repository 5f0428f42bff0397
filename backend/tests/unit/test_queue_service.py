"""
Unit Tests for DialerQueueService
"""
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from powerdialer.core.exceptions import InvalidArgumentError, UpstreamUnavailableError
from powerdialer.domain.interfaces.lead_store import LeadStore
from powerdialer.domain.models.lead import DialerTimezone, LeadStatus
from powerdialer.domain.services.queue_service import DialerQueueService


@pytest.fixture
def service(sql_store, clock):
    return DialerQueueService(sql_store, clock=clock)


class TestBuildQueue:
    """Tests for queue assembly"""

    def test_active_bucket_from_cascade(self, service, make_lead):
        ct = make_lead(region="TX", timezone=DialerTimezone.CT)
        make_lead(region="NC", timezone=DialerTimezone.ET)

        snapshot = service.build_queue()

        assert snapshot.current_timezone == DialerTimezone.CT
        assert "Central" in snapshot.current_hour_block
        assert [lead.id for lead in snapshot.leads] == [ct.id]

    def test_zone_override(self, service, make_lead):
        make_lead(timezone=DialerTimezone.CT)
        pt = make_lead(region="CA", timezone=DialerTimezone.PT)

        snapshot = service.build_queue(zone_override="pt")

        assert snapshot.current_timezone == DialerTimezone.PT
        assert [lead.id for lead in snapshot.leads] == [pt.id]

    def test_unknown_zone_override(self, service):
        with pytest.raises(InvalidArgumentError):
            service.build_queue(zone_override="EST")

    def test_callbacks_come_first_soonest_first(self, service, make_lead, fixed_now):
        queued = make_lead(timezone=DialerTimezone.CT)
        later = make_lead(status=LeadStatus.CALLBACK, next_call_at=fixed_now - timedelta(minutes=5))
        sooner = make_lead(status=LeadStatus.CALLBACK, next_call_at=fixed_now - timedelta(hours=2))
        make_lead(status=LeadStatus.CALLBACK, next_call_at=fixed_now + timedelta(hours=1))

        snapshot = service.build_queue()

        assert [lead.id for lead in snapshot.leads] == [sooner.id, later.id, queued.id]

    def test_callbacks_capped(self, sql_store, make_lead, clock, fixed_now):
        service = DialerQueueService(sql_store, callback_limit=2, clock=clock)
        for minutes in (30, 20, 10):
            make_lead(status=LeadStatus.CALLBACK, next_call_at=fixed_now - timedelta(minutes=minutes))

        snapshot = service.build_queue()

        assert len(snapshot.leads) == 2
        assert len(snapshot.callbacks_due) == 3

    def test_never_called_before_retries_then_oldest(self, service, make_lead):
        retried = make_lead(timezone=DialerTimezone.CT, attempt_count=1)
        old_fresh = make_lead(timezone=DialerTimezone.CT)
        new_fresh = make_lead(timezone=DialerTimezone.CT)

        snapshot = service.build_queue()

        assert [lead.id for lead in snapshot.leads] == [old_fresh.id, new_fresh.id, retried.id]

    def test_excludes_terminal_and_capped_leads(self, service, make_lead):
        make_lead(timezone=DialerTimezone.CT, status=LeadStatus.COMPLETED)
        make_lead(timezone=DialerTimezone.CT, status=LeadStatus.ARCHIVED)
        make_lead(timezone=DialerTimezone.CT, attempt_count=5, max_attempts=5)
        ok = make_lead(timezone=DialerTimezone.CT, attempt_count=4, max_attempts=5)

        snapshot = service.build_queue()

        assert [lead.id for lead in snapshot.leads] == [ok.id]

    def test_outside_hours_returns_all_zones(self, sql_store, make_lead, fixed_now):
        late = fixed_now + timedelta(hours=12)  # 22:30 EST
        service = DialerQueueService(sql_store, clock=lambda: late)
        a = make_lead(timezone=DialerTimezone.ET)
        b = make_lead(timezone=DialerTimezone.PT)

        snapshot = service.build_queue()

        assert snapshot.current_timezone is None
        assert snapshot.current_hour_block is None
        assert [lead.id for lead in snapshot.leads] == [a.id, b.id]

    def test_limit_applies_to_queued_leads(self, service, make_lead):
        for _ in range(5):
            make_lead(timezone=DialerTimezone.CT)

        assert len(service.build_queue(limit=3).leads) == 3

    @pytest.mark.parametrize("limit", [0, -1, 501])
    def test_invalid_limit(self, service, limit):
        with pytest.raises(InvalidArgumentError):
            service.build_queue(limit=limit)

    def test_no_duplicate_leads(self, make_lead, fixed_now, clock):
        lead = make_lead(timezone=DialerTimezone.CT)
        store = MagicMock(spec=LeadStore)
        store.list_due_callbacks.return_value = [lead]
        store.list_queued.return_value = [lead]
        store.count_history_on.return_value = 0
        store.count_callable.return_value = 1

        snapshot = DialerQueueService(store, clock=clock).build_queue()

        assert [l.id for l in snapshot.leads] == [lead.id]

    def test_counters_and_breakdown(self, service, make_lead, fixed_now):
        make_lead(timezone=DialerTimezone.ET)
        make_lead(timezone=DialerTimezone.ET, status=LeadStatus.CALLBACK, next_call_at=fixed_now + timedelta(hours=3))
        make_lead(timezone=DialerTimezone.CT, status=LeadStatus.IN_PROGRESS)
        make_lead(timezone=DialerTimezone.PT, status=LeadStatus.CALLBACK, next_call_at=fixed_now + timedelta(days=2))
        make_lead(timezone=DialerTimezone.MT, status=LeadStatus.COMPLETED)

        snapshot = service.build_queue()

        assert snapshot.total_today == 4
        assert snapshot.completed_today == 0
        # Due before end of today only
        assert len(snapshot.callbacks_due) == 1
        assert snapshot.breakdown_by_timezone == {
            DialerTimezone.ET: 2,
            DialerTimezone.CT: 0,
            DialerTimezone.MT: 0,
            DialerTimezone.PT: 1,
        }

    def test_pure_read(self, service, sql_store, make_lead):
        lead = make_lead(timezone=DialerTimezone.CT)

        first = service.build_queue()
        second = service.build_queue()

        assert [l.id for l in first.leads] == [l.id for l in second.leads]
        assert sql_store.get_lead(lead.id).model_dump() == lead.model_dump()

    def test_store_failure_propagates(self, clock):
        store = MagicMock(spec=LeadStore)
        store.list_due_callbacks.side_effect = UpstreamUnavailableError("down")

        with pytest.raises(UpstreamUnavailableError):
            DialerQueueService(store, clock=clock).build_queue()
