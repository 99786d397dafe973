"""Administrative routes for the OpenTSDB frontend."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from tsdb_frontend.api.dependencies import get_app_settings
from tsdb_frontend.core.config import Settings
from tsdb_frontend.core.metrics import metrics_response

router = APIRouter()


@router.get("/health", summary="Liveness check")
async def health() -> dict[str, bool]:
    return {"ok": True}


@router.get("/status/config", summary="Effective configuration, credentials redacted")
async def status_config(settings: Settings = Depends(get_app_settings)) -> dict[str, object]:
    data = settings.model_dump()
    if data.get("basic_auth_password"):
        data["basic_auth_password"] = "<secret>"
    return data


@router.get("/metrics", summary="Prometheus metrics")
async def get_metrics():
    return metrics_response()


__all__ = ["router"]
