"""
Unit Tests for LeadService
"""
import pytest

from powerdialer.core.exceptions import InvalidArgumentError, LeadNotFoundError
from powerdialer.domain.models.lead import DialerTimezone, LeadFilter, LeadStatus, LeadUpdate
from powerdialer.domain.services.disposition_service import DispositionService
from powerdialer.domain.services.lead_service import LeadService


@pytest.fixture
def service(sql_store, clock):
    return LeadService(sql_store, clock=clock)


class TestListLeads:
    """Tests for list_leads"""

    def test_newest_first_with_count(self, service, make_lead):
        leads = [make_lead() for _ in range(3)]

        page = service.list_leads(LeadFilter(limit=2))

        assert page.count == 3
        assert [lead.id for lead in page.leads] == [leads[2].id, leads[1].id]

    def test_offset(self, service, make_lead):
        leads = [make_lead() for _ in range(3)]
        page = service.list_leads(LeadFilter(limit=2, offset=2))
        assert [lead.id for lead in page.leads] == [leads[0].id]

    def test_filters(self, service, make_lead):
        make_lead(timezone=DialerTimezone.ET)
        target = make_lead(timezone=DialerTimezone.PT, status=LeadStatus.CALLBACK)
        make_lead(timezone=DialerTimezone.PT)

        page = service.list_leads(LeadFilter(timezone=DialerTimezone.PT, status=LeadStatus.CALLBACK))

        assert page.count == 1
        assert page.leads[0].id == target.id

    def test_search_matches_name_owner_and_phone(self, service, make_lead):
        by_business = make_lead(business_name="Sunrise Plumbing")
        by_owner = make_lead(owner_name="Sam Sunrise")
        by_phone = make_lead(phone_number="3035550777")
        make_lead()

        assert {l.id for l in service.list_leads(LeadFilter(search="  sunrise ")).leads} == {
            by_business.id,
            by_owner.id,
        }
        assert [l.id for l in service.list_leads(LeadFilter(search="0777")).leads] == [by_phone.id]

    def test_blank_search_ignored(self, service, make_lead):
        make_lead()
        make_lead()
        assert service.list_leads(LeadFilter(search="   ")).count == 2


class TestLeadDetail:
    """Tests for get_lead_detail"""

    def test_history_newest_first(self, service, sql_store, make_lead, clock):
        lead = make_lead()
        dispositions = DispositionService(sql_store, clock=clock, jitter=lambda: 0.0)
        dispositions.apply_disposition(lead.id, "no_answer")
        dispositions.apply_disposition(lead.id, "voicemail")

        detail = service.get_lead_detail(lead.id)

        assert detail.lead.attempt_count == 2
        assert [entry.attempt_number for entry in detail.history] == [2, 1]

    def test_missing(self, service):
        with pytest.raises(LeadNotFoundError):
            service.get_lead_detail("missing")


class TestUpdateLead:
    """Tests for update_lead"""

    def test_descriptive_update(self, service, make_lead, fixed_now):
        lead = make_lead()

        updated = service.update_lead(lead.id, LeadUpdate(owner_name="Pat Lee", max_attempts=8))

        assert updated.owner_name == "Pat Lee"
        assert updated.max_attempts == 8
        assert updated.business_name == lead.business_name
        assert updated.updated_at == fixed_now

    def test_region_change_resolves_timezone(self, service, make_lead):
        lead = make_lead()
        assert service.update_lead(lead.id, LeadUpdate(region="Arizona")).timezone == DialerTimezone.MT

    def test_unknown_region_clears_timezone(self, service, make_lead):
        lead = make_lead()
        updated = service.update_lead(lead.id, LeadUpdate(region="Nowhere"))
        assert updated.region == "Nowhere"
        assert updated.timezone is None

    def test_scheduling_state_not_editable(self, service, sql_store, make_lead):
        lead = make_lead(status=LeadStatus.CALLBACK)
        service.update_lead(lead.id, LeadUpdate(business_name="Renamed"))

        stored = sql_store.get_lead(lead.id)
        assert stored.status == LeadStatus.CALLBACK
        assert stored.attempt_count == 0

    def test_empty_update(self, service, make_lead):
        lead = make_lead()
        with pytest.raises(InvalidArgumentError):
            service.update_lead(lead.id, LeadUpdate())

    def test_null_max_attempts(self, service, make_lead):
        lead = make_lead()
        with pytest.raises(InvalidArgumentError):
            service.update_lead(lead.id, LeadUpdate(max_attempts=None))

    def test_missing(self, service):
        with pytest.raises(LeadNotFoundError):
            service.update_lead("missing", LeadUpdate(owner_name="x"))


class TestDeleteLead:
    """Tests for delete_lead"""

    def test_delete_removes_history(self, service, sql_store, make_lead, clock):
        lead = make_lead()
        DispositionService(sql_store, clock=clock).apply_disposition(lead.id, "voicemail")

        service.delete_lead(lead.id)

        assert sql_store.get_lead(lead.id) is None
        assert sql_store.list_history(lead.id) == []

    def test_delete_missing(self, service):
        with pytest.raises(LeadNotFoundError):
            service.delete_lead("missing")
