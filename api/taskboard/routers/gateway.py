"""Gateway probe and model listing for the dashboard header."""

from __future__ import annotations

from fastapi import APIRouter

from taskboard.models.task import AgentModels, GatewayStatus
from taskboard.services import gateway_client, gateway_config

router = APIRouter()


@router.get("/gateway/status", response_model=GatewayStatus, response_model_exclude_none=True)
async def gateway_status() -> GatewayStatus:
    """Always 200; `connected` says whether the gateway answered its health check."""
    return GatewayStatus.model_validate(await gateway_client.check_health())


@router.get("/agents", response_model=AgentModels)
async def list_agents() -> AgentModels:
    models, primary, configured = gateway_config.available_models()
    return AgentModels(models=models, primary=primary, configured=configured)
