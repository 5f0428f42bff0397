"""
Reconciliation Service
Merges external lead rows into the lead store without clobbering operator progress
"""
import logging
from typing import Any, Dict, Iterable, Optional, Tuple, Union

from pydantic import ValidationError

from powerdialer.core.exceptions import ConflictError
from powerdialer.domain.interfaces.lead_source import LeadSource
from powerdialer.domain.interfaces.lead_store import LeadStore
from powerdialer.domain.models.dialer_reports import ImportResult, ReconciliationRow
from powerdialer.domain.models.lead import DEFAULT_MAX_ATTEMPTS, DialerLead, LeadStatus
from powerdialer.domain.services.phone_normalizer import (
    RegionResolver,
    is_valid_phone,
    normalize_phone,
)
from powerdialer.utils.time_utils import Clock, utc_now

logger = logging.getLogger(__name__)


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def seed_from_sheet_outcome(outcome: Optional[str]) -> Tuple[LeadStatus, Dict[str, bool]]:
    """
    Initial status and flags for a new lead whose source row already
    records a call result.
    """
    text = (outcome or "").strip().lower()
    if "not interested" in text or "not a match" in text:
        return LeadStatus.COMPLETED, {"not_interested": True}
    if "wrong" in text:
        return LeadStatus.COMPLETED, {"wrong_number": True}
    if "booked" in text or "demo" in text:
        return LeadStatus.COMPLETED, {"demo_booked": True}
    return LeadStatus.QUEUED, {}


class ReconciliationService:
    """
    Idempotent merge keyed on the normalized phone number.

    - Unknown phone: inserted as a fresh queued lead
    - Terminal lead: left untouched, counted as duplicate
    - Active lead: descriptive fields refreshed, scheduling state untouched,
      counted as duplicate and updated (duplicate only if it turned
      terminal before the write landed)

    One bad row never aborts the batch; its problem is recorded in
    `errors` and processing continues.
    """

    def __init__(
        self,
        store: LeadStore,
        resolver: Optional[RegionResolver] = None,
        clock: Clock = utc_now,
        default_max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ):
        self._store = store
        self._resolver = resolver or RegionResolver()
        self._clock = clock
        self._default_max_attempts = default_max_attempts

    def reconcile_source(self, source: LeadSource) -> ImportResult:
        """Fetch every row from `source` and reconcile them."""
        rows = source.fetch_rows()
        logger.info(f"Reconciling {len(rows)} rows from source '{source.batch_name}'")
        return self.reconcile(
            rows,
            batch=source.batch_name,
            require_business_name=source.requires_business_name,
        )

    def reconcile(
        self,
        rows: Iterable[Union[ReconciliationRow, Dict[str, Any]]],
        batch: Optional[str] = None,
        require_business_name: bool = False,
    ) -> ImportResult:
        """
        Merge a batch of rows into the store.

        Args:
            rows: Source rows (models or plain dicts)
            batch: Import batch tag for inserted leads (default: timestamp)
            require_business_name: Skip rows without a business name

        Returns:
            ImportResult with imported/duplicates/updated/skipped/errors
        """
        batch = batch or self._clock().isoformat()
        result = ImportResult()

        for index, raw in enumerate(rows, start=1):
            result.total_rows += 1
            ref = f"row-{index}"

            try:
                row = raw if isinstance(raw, ReconciliationRow) else ReconciliationRow.model_validate(raw)
            except ValidationError as e:
                result.skipped += 1
                result.errors.append(f"Row {ref}: invalid row ({e.error_count()} field errors)")
                continue

            ref = row.sheet_row_id or ref

            try:
                self._reconcile_row(row, batch, require_business_name, result)
            except Exception as e:
                logger.warning(f"Reconciliation failed for {ref}: {e}")
                result.errors.append(f"Row {ref}: {e}")

        logger.info(
            f"Reconciliation batch '{batch}': imported={result.imported}, "
            f"duplicates={result.duplicates}, updated={result.updated}, "
            f"skipped={result.skipped}, errors={len(result.errors)}"
        )
        return result

    def _reconcile_row(
        self,
        row: ReconciliationRow,
        batch: str,
        require_business_name: bool,
        result: ImportResult,
    ) -> None:
        raw_phone = _clean(row.phone_number)
        business_name = _clean(row.business_name)

        # 1. Validation
        if not raw_phone:
            result.skipped += 1
            return

        phone = normalize_phone(raw_phone)
        if not is_valid_phone(phone):
            result.skipped += 1
            result.errors.append(f"Invalid phone number for {business_name or 'unknown'}: {raw_phone}")
            return

        if require_business_name and not business_name:
            result.skipped += 1
            return

        # 2. Normalized descriptive fields
        region = _clean(row.region)
        timezone = self._resolver.resolve(region) if region else None
        descriptive = {
            "business_name": business_name,
            "owner_name": _clean(row.owner_name),
            "first_name": _clean(row.first_name),
            "website": _clean(row.website),
            "region": region,
            "timezone": timezone,
            "sheet_row_id": _clean(row.sheet_row_id),
        }

        # 3. Merge
        existing = self._store.find_by_phone(phone)

        if existing is None:
            self._insert(phone, descriptive, row, batch, result)
            return

        if existing.is_terminal:
            result.duplicates += 1
            return

        changes = {key: value for key, value in descriptive.items() if value is not None}
        result.duplicates += 1
        if changes:
            changes["updated_at"] = self._clock()
            if not self._store.update_descriptive(existing.id, changes):
                # Went terminal after the lookup: counted as a plain duplicate
                return
        result.updated += 1

    def _insert(
        self,
        phone: str,
        descriptive: Dict[str, Any],
        row: ReconciliationRow,
        batch: str,
        result: ImportResult,
    ) -> None:
        now = self._clock()
        status, flags = seed_from_sheet_outcome(row.sheet_outcome)

        lead = DialerLead(
            phone_number=phone,
            status=status,
            attempt_count=0,
            max_attempts=self._default_max_attempts,
            notes=_clean(row.sheet_notes),
            import_batch=batch,
            created_at=now,
            updated_at=now,
            **descriptive,
            **flags,
        )

        try:
            self._store.insert_lead(lead)
        except ConflictError:
            # Inserted concurrently by another batch
            result.duplicates += 1
            return

        result.imported += 1
