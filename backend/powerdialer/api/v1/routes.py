"""
API Router
Combines all endpoint routers
"""
from fastapi import APIRouter
from powerdialer.api.v1.endpoints import (
    dialer,
    health,
)

api_router = APIRouter()

api_router.include_router(health.router)
api_router.include_router(dialer.router)
