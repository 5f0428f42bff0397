"""
Dialer Endpoints
Operator-facing power dialer API

- GET  /dialer/queue        - Ordered call list for the active timezone block
- POST /dialer/disposition  - Record a call outcome
- POST /dialer/import       - Reconcile leads from JSON rows
- POST /dialer/import/csv   - Reconcile leads from an uploaded CSV
- POST /dialer/sync         - Reconcile leads from the Google Sheet
- GET  /dialer/stats        - Daily dashboard counters
- /dialer/leads             - Lead browser (list, detail, edit, delete)
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field

from powerdialer.api.v1.dependencies import (
    get_disposition_service,
    get_lead_service,
    get_queue_service,
    get_reconciliation_service,
    get_reservation_service,
    get_sheet_source,
    get_stats_service,
)
from powerdialer.core.exceptions import (
    ConflictError,
    DialerError,
    InvalidArgumentError,
    LeadNotFoundError,
    UpstreamUnavailableError,
)
from powerdialer.domain.models.dialer_reports import (
    DailyDialerStats,
    ImportResult,
    LeadDetail,
    LeadPage,
    QueueSnapshot,
)
from powerdialer.domain.models.lead import (
    DialerLead,
    DialerTimezone,
    LeadFilter,
    LeadStatus,
    LeadUpdate,
)
from powerdialer.domain.services.disposition_service import DispositionService
from powerdialer.domain.services.lead_service import LeadService
from powerdialer.domain.services.queue_service import DialerQueueService
from powerdialer.domain.services.reconciliation_service import ReconciliationService
from powerdialer.domain.services.reservation_service import LeadReservationService
from powerdialer.domain.services.stats_service import DialerStatsService
from powerdialer.infrastructure.sources.csv_source import CsvLeadSource
from powerdialer.infrastructure.sources.google_sheets import GoogleSheetLeadSource

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/dialer", tags=["dialer"])


class DispositionRequest(BaseModel):
    """Outcome reported by an operator"""
    lead_id: str
    outcome: str
    notes: Optional[str] = None
    demo_date: Optional[datetime] = None
    callback_at: Optional[datetime] = None
    operator_id: Optional[str] = None


class DispositionResponse(BaseModel):
    success: bool = True
    new_status: LeadStatus
    attempt_count: int


class ImportRequest(BaseModel):
    """Rows to reconcile; each row is validated on its own so one bad row is only skipped"""
    leads: List[Dict[str, Any]] = Field(..., min_length=1)
    batch_name: Optional[str] = None


def _http_error(e: DialerError) -> HTTPException:
    """Map a dialer error onto its HTTP status"""
    if isinstance(e, LeadNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, InvalidArgumentError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if isinstance(e, ConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if isinstance(e, UpstreamUnavailableError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


def _internal_error(action: str, e: Exception) -> HTTPException:
    logger.error(f"Failed to {action}: {e}", exc_info=True)
    return HTTPException(status_code=500, detail=f"Failed to {action}")


@router.get("/queue", response_model=QueueSnapshot)
async def get_queue(
    timezone: Optional[str] = Query(None, description="Force a timezone bucket (ET, CT, MT, PT)"),
    limit: Optional[int] = Query(None, description="Max queued leads (1-500)"),
    operator_id: Optional[str] = Query(None, description="Operator requesting the queue"),
    queue_service: DialerQueueService = Depends(get_queue_service),
    reservations: Optional[LeadReservationService] = Depends(get_reservation_service),
):
    """
    Get the call queue.

    Due callbacks come first, then queued leads for the active timezone
    block (or the `timezone` override). With lead reservations enabled and
    an `operator_id`, leads leased to other operators are left out.
    """
    try:
        snapshot = await run_in_threadpool(
            queue_service.build_queue, None, timezone, limit
        )
    except DialerError as e:
        raise _http_error(e)
    except Exception as e:
        raise _internal_error("build queue", e)

    if reservations and operator_id:
        snapshot.leads = await reservations.claim(snapshot.leads, operator_id)

    return snapshot


@router.post("/disposition", response_model=DispositionResponse)
async def record_disposition(
    request: DispositionRequest,
    disposition_service: DispositionService = Depends(get_disposition_service),
    reservations: Optional[LeadReservationService] = Depends(get_reservation_service),
):
    """Record the outcome of a call and reschedule the lead"""
    try:
        result = await run_in_threadpool(
            disposition_service.apply_disposition,
            request.lead_id,
            request.outcome,
            request.notes,
            request.demo_date,
            request.callback_at,
        )
    except DialerError as e:
        raise _http_error(e)
    except Exception as e:
        raise _internal_error("record disposition", e)

    if reservations:
        await reservations.release(request.lead_id, request.operator_id)

    return DispositionResponse(new_status=result.new_status, attempt_count=result.attempt_count)


@router.post("/import", response_model=ImportResult)
def import_leads(
    request: ImportRequest,
    reconciliation: ReconciliationService = Depends(get_reconciliation_service),
):
    """Reconcile JSON lead rows into the dialer"""
    try:
        return reconciliation.reconcile(request.leads, batch=request.batch_name)
    except DialerError as e:
        raise _http_error(e)
    except Exception as e:
        raise _internal_error("import leads", e)


@router.post("/import/csv", response_model=ImportResult)
async def import_csv(
    file: UploadFile = File(...),
    batch_name: Optional[str] = Form(None),
    reconciliation: ReconciliationService = Depends(get_reconciliation_service),
):
    """
    Reconcile leads from a CSV upload.

    CSV Format Expected (header names are case-insensitive, aliases allowed):
        state,business name,phone,owner,first name,website
        NC,Acme Roofing,(919) 555-0100,Jane Doe,Jane,acme.example
    """
    if not file.filename or not file.filename.lower().endswith(".csv"):
        raise HTTPException(status_code=400, detail="Only CSV files are supported")

    content = await file.read()
    batch = batch_name or f"csv:{file.filename}"

    try:
        source = CsvLeadSource.from_bytes(content, batch_name=batch)
        return await run_in_threadpool(reconciliation.reconcile_source, source)
    except DialerError as e:
        raise _http_error(e)
    except Exception as e:
        raise _internal_error("import CSV", e)


@router.post("/sync", response_model=ImportResult)
def sync_sheet(
    reconciliation: ReconciliationService = Depends(get_reconciliation_service),
    source: GoogleSheetLeadSource = Depends(get_sheet_source),
):
    """Reconcile leads from the configured Google Sheet"""
    try:
        return reconciliation.reconcile_source(source)
    except DialerError as e:
        raise _http_error(e)
    except Exception as e:
        raise _internal_error("sync Google Sheet", e)
    finally:
        source.close()


@router.get("/stats", response_model=DailyDialerStats)
def get_stats(stats_service: DialerStatsService = Depends(get_stats_service)):
    """Daily dashboard counters"""
    try:
        return stats_service.get_stats()
    except DialerError as e:
        raise _http_error(e)
    except Exception as e:
        raise _internal_error("load stats", e)


@router.get("/leads", response_model=LeadPage)
def list_leads(
    status_filter: Optional[LeadStatus] = Query(None, alias="status"),
    timezone: Optional[DialerTimezone] = Query(None),
    search: Optional[str] = Query(None, description="Business, owner or phone substring"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    lead_service: LeadService = Depends(get_lead_service),
):
    """Browse leads, newest first"""
    filters = LeadFilter(status=status_filter, timezone=timezone, search=search, limit=limit, offset=offset)
    try:
        return lead_service.list_leads(filters)
    except DialerError as e:
        raise _http_error(e)
    except Exception as e:
        raise _internal_error("list leads", e)


@router.get("/leads/{lead_id}", response_model=LeadDetail)
def get_lead(lead_id: str, lead_service: LeadService = Depends(get_lead_service)):
    """Lead with its call history"""
    try:
        return lead_service.get_lead_detail(lead_id)
    except DialerError as e:
        raise _http_error(e)
    except Exception as e:
        raise _internal_error("load lead", e)


@router.patch("/leads/{lead_id}", response_model=DialerLead)
def update_lead(
    lead_id: str,
    update: LeadUpdate,
    lead_service: LeadService = Depends(get_lead_service),
):
    """Edit descriptive fields or the attempt cap"""
    try:
        return lead_service.update_lead(lead_id, update)
    except DialerError as e:
        raise _http_error(e)
    except Exception as e:
        raise _internal_error("update lead", e)


@router.delete("/leads/{lead_id}")
def delete_lead(lead_id: str, lead_service: LeadService = Depends(get_lead_service)):
    """Delete a lead and its call history"""
    try:
        lead_service.delete_lead(lead_id)
    except DialerError as e:
        raise _http_error(e)
    except Exception as e:
        raise _internal_error("delete lead", e)

    return {"success": True}
