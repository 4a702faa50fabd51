"""
Main API v1 router.

Aggregates all endpoint sub-routers under the /api/v1 prefix.
Import this router from the FastAPI application entry point and include it:

    from waterwatch.api.v1.router import api_v1_router
    app.include_router(api_v1_router, prefix="/api/v1")
"""

from __future__ import annotations

from fastapi import APIRouter

from waterwatch.api.v1.endpoints.alert_rules import router as alert_rules_router
from waterwatch.api.v1.endpoints.alerts import router as alerts_router
from waterwatch.api.v1.endpoints.health import router as health_router

api_v1_router = APIRouter()

# Health checks (no prefix -- mounted at /api/v1/health and /api/v1/ready)
api_v1_router.include_router(health_router)

# Alerts -- /api/v1/alerts/*
api_v1_router.include_router(alerts_router)

# Alert rules -- /api/v1/alert-rules/*
api_v1_router.include_router(alert_rules_router)
