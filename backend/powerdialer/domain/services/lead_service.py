"""
Lead Management Service
Browse, inspect, edit and delete leads outside the calling flow
"""
import logging
from typing import Optional

from powerdialer.core.exceptions import InvalidArgumentError, LeadNotFoundError
from powerdialer.domain.interfaces.lead_store import LeadStore
from powerdialer.domain.models.dialer_reports import LeadDetail, LeadPage
from powerdialer.domain.models.lead import DialerLead, LeadFilter, LeadUpdate
from powerdialer.domain.services.phone_normalizer import RegionResolver
from powerdialer.utils.time_utils import Clock, utc_now

logger = logging.getLogger(__name__)


class LeadService:
    """
    Manual lead administration.

    Only descriptive fields and the attempt cap are editable here.
    Scheduling state and notes change through dispositions alone.
    """

    def __init__(
        self,
        store: LeadStore,
        resolver: Optional[RegionResolver] = None,
        clock: Clock = utc_now,
    ):
        self._store = store
        self._resolver = resolver or RegionResolver()
        self._clock = clock

    def list_leads(self, filters: Optional[LeadFilter] = None) -> LeadPage:
        filters = filters or LeadFilter()
        if filters.search is not None:
            filters = filters.model_copy(update={"search": filters.search.strip() or None})
        leads, count = self._store.list_leads(filters)
        return LeadPage(leads=leads, count=count)

    def get_lead_detail(self, lead_id: str) -> LeadDetail:
        lead = self._store.get_lead(lead_id)
        if lead is None:
            raise LeadNotFoundError(lead_id)
        return LeadDetail(lead=lead, history=self._store.list_history(lead_id))

    def update_lead(self, lead_id: str, update: LeadUpdate) -> DialerLead:
        """
        Apply a manual edit.

        Changing the region re-resolves the timezone bucket; an
        unrecognized region clears it.
        """
        fields = update.model_dump(exclude_unset=True)
        if not fields:
            raise InvalidArgumentError("No fields to update")

        if "region" in fields:
            region = (fields["region"] or "").strip() or None
            fields["region"] = region
            fields["timezone"] = self._resolver.resolve(region) if region else None

        if fields.get("max_attempts", 1) is None:
            raise InvalidArgumentError("max_attempts cannot be null")

        fields["updated_at"] = self._clock()

        lead = self._store.update_lead(lead_id, fields)
        if lead is None:
            raise LeadNotFoundError(lead_id)

        logger.info(f"Lead {lead_id} updated: {sorted(k for k in fields if k != 'updated_at')}")
        return lead

    def delete_lead(self, lead_id: str) -> None:
        if not self._store.delete_lead(lead_id):
            raise LeadNotFoundError(lead_id)
        logger.info(f"Lead {lead_id} deleted")
