"""
API Dependencies
Shared dependencies wiring the lead store and dialer services
"""
from functools import lru_cache
from typing import Optional

from fastapi import Depends
from supabase import create_client, Client

from powerdialer.core.config import ConfigManager, get_settings
from powerdialer.domain.interfaces.lead_store import LeadStore
from powerdialer.domain.models.calling_schedule import CallingSchedule
from powerdialer.domain.models.lead import DEFAULT_MAX_ATTEMPTS
from powerdialer.domain.services.disposition_service import DispositionService
from powerdialer.domain.services.lead_service import LeadService
from powerdialer.domain.services.queue_service import DialerQueueService
from powerdialer.domain.services.reconciliation_service import ReconciliationService
from powerdialer.domain.services.reservation_service import LeadReservationService
from powerdialer.domain.services.stats_service import DialerStatsService
from powerdialer.infrastructure.sources.google_sheets import GoogleSheetLeadSource
from powerdialer.infrastructure.storage.database import (
    create_db_engine,
    create_session_factory,
    init_schema,
)
from powerdialer.infrastructure.storage.sql_lead_store import SqlLeadStore
from powerdialer.infrastructure.storage.supabase_lead_store import SupabaseLeadStore


def get_supabase() -> Client:
    """
    Get Supabase client with validation.

    Raises:
        RuntimeError: If Supabase URL or SERVICE_KEY is not configured
    """
    settings = get_settings()

    if not settings.supabase_url:
        raise RuntimeError(
            "SUPABASE_URL is not configured. "
            "Set SUPABASE_URL environment variable."
        )
    if not settings.supabase_service_key:
        raise RuntimeError(
            "SUPABASE_SERVICE_KEY is not configured. "
            "Set SUPABASE_SERVICE_KEY environment variable."
        )

    return create_client(settings.supabase_url, settings.supabase_service_key)


@lru_cache
def get_config_manager() -> ConfigManager:
    return ConfigManager(env=get_settings().environment)


@lru_cache
def get_lead_store() -> LeadStore:
    """
    Lead store selected by STORE_BACKEND ("supabase" or "sql").

    Raises:
        RuntimeError: Unknown backend or missing connection settings
    """
    settings = get_settings()
    backend = settings.store_backend.lower()

    if backend == "sql":
        if not settings.database_url:
            raise RuntimeError("DATABASE_URL is not configured. Set DATABASE_URL environment variable.")
        engine = create_db_engine(settings.database_url)
        if settings.database_url.startswith("sqlite"):
            init_schema(engine)
        return SqlLeadStore(create_session_factory(engine))

    if backend == "supabase":
        return SupabaseLeadStore(get_supabase())

    raise RuntimeError(f"Unknown STORE_BACKEND: {settings.store_backend}")


def get_schedule(config: ConfigManager = Depends(get_config_manager)) -> CallingSchedule:
    return CallingSchedule.from_dict(config.get_dialer_config())


def get_queue_service(
    store: LeadStore = Depends(get_lead_store),
    schedule: CallingSchedule = Depends(get_schedule),
    config: ConfigManager = Depends(get_config_manager),
) -> DialerQueueService:
    return DialerQueueService(
        store,
        schedule,
        callback_limit=config.get("dialer.callback_limit", DialerQueueService.CALLBACK_LIMIT),
        default_limit=config.get("dialer.default_queue_limit", DialerQueueService.DEFAULT_LIMIT),
        max_limit=config.get("dialer.max_queue_limit", DialerQueueService.MAX_LIMIT),
    )


def get_disposition_service(
    store: LeadStore = Depends(get_lead_store),
    schedule: CallingSchedule = Depends(get_schedule),
) -> DispositionService:
    return DispositionService(store, schedule)


def get_reconciliation_service(
    store: LeadStore = Depends(get_lead_store),
    config: ConfigManager = Depends(get_config_manager),
) -> ReconciliationService:
    return ReconciliationService(
        store,
        default_max_attempts=config.get("dialer.default_max_attempts", DEFAULT_MAX_ATTEMPTS),
    )


def get_stats_service(
    store: LeadStore = Depends(get_lead_store),
    schedule: CallingSchedule = Depends(get_schedule),
) -> DialerStatsService:
    return DialerStatsService(store, schedule)


def get_lead_service(store: LeadStore = Depends(get_lead_store)) -> LeadService:
    return LeadService(store)


@lru_cache
def get_reservation_service() -> Optional[LeadReservationService]:
    """Lease service when RESERVATION_ENABLED, else None (queue is shared)"""
    settings = get_settings()
    if not settings.reservation_enabled:
        return None
    return LeadReservationService(settings.redis_url, ttl_seconds=settings.reservation_ttl_seconds)


def get_sheet_source() -> GoogleSheetLeadSource:
    settings = get_settings()
    return GoogleSheetLeadSource(
        sheet_id=settings.google_sheet_id,
        sheet_range=settings.google_sheet_range,
        credentials_file=settings.google_service_account_file,
    )
