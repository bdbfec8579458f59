"""
Config and endpoint maintenance endpoints.
"""

import logging
from typing import Any, Dict

from fastapi import Depends, HTTPException, Request

from . import router
from .auth import verify_admin
from .models import ConfigUpdate

logger = logging.getLogger(__name__)


def _apply_live_settings(state) -> None:
    """Push tunables into the services that copied them at startup."""
    config = state.config
    state.registry.max_consecutive_failures = config.max_consecutive_failures
    state.orchestrator.selector.retry_interval_s = config.endpoint_retry_interval_s
    state.monitor.threshold_s = config.health_check_threshold_s
    state.monitor.probe_timeout_s = config.health_probe_timeout_s
    state.monitor.readmit_interval_s = config.health_readmit_interval_s
    state.enricher.max_documents = config.context_max_documents
    state.enricher.max_chars = config.context_max_chars


@router.get("/config")
async def get_config(request: Request, _: bool = Depends(verify_admin)) -> Dict[str, Any]:
    """Get current runtime configuration (secrets reported as set/unset only)."""
    return {
        "success": True,
        "config": request.app.state.config.to_dict(),
    }


@router.put("/config")
async def update_config(
    update: ConfigUpdate,
    request: Request,
    _: bool = Depends(verify_admin),
) -> Dict[str, Any]:
    """
    Update runtime configuration.

    Timeouts, retry and context settings take effect on the next request.
    Endpoint changes take effect on restart.
    """
    config = request.app.state.config

    # Filter out None values
    updates = {k: v for k, v in update.model_dump().items() if v is not None}

    if not updates:
        return {"success": True, "updated": [], "message": "No changes"}

    # Sanitize string config values
    for k, v in updates.items():
        if isinstance(v, str):
            updates[k] = v.strip()

    result = config.update(**updates)
    if not result["updated"] and result["ignored"]:
        raise HTTPException(
            status_code=400,
            detail=f"No valid changes (rejected: {', '.join(result['ignored'])})",
        )

    _apply_live_settings(request.app.state)

    return {
        "success": True,
        "updated": result["updated"],
        "ignored": result["ignored"],
        "update_count": result["update_count"],
    }


@router.post("/config/reset")
async def reset_config(request: Request, _: bool = Depends(verify_admin)) -> Dict[str, Any]:
    """Reset configuration to environment defaults."""
    result = request.app.state.config.reset_to_defaults()
    _apply_live_settings(request.app.state)
    return {
        "success": True,
        "changes": result["changes"],
    }


@router.post("/endpoints/check")
async def check_endpoints(request: Request, _: bool = Depends(verify_admin)) -> Dict[str, Any]:
    """Probe every endpoint now and return the refreshed registry status."""
    status = await request.app.state.monitor.check_all()
    return {"success": True, **status}
