"""Health check endpoint.

Reports the served networks and the settled-transaction registry status.
Used by Docker healthchecks, load balancers, and monitoring systems.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from tron_facilitator import __version__
from tron_facilitator.api.deps import get_app_settings, get_settlement_registry
from tron_facilitator.config import Settings
from tron_facilitator.infrastructure.settlement_registry import SettlementRegistry
from tron_facilitator.logging_config import get_logger
from tron_facilitator.schemas.payment import HealthResponse

router = APIRouter(tags=["Health"])
logger = get_logger(__name__)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns the health status of the application and its dependencies.",
)
async def health_check(
    settings: Settings = Depends(get_app_settings),
    registry: SettlementRegistry = Depends(get_settlement_registry),
) -> HealthResponse:
    """Check connectivity to the settled-transaction registry."""
    try:
        registry_status = "healthy" if await registry.ping() else "unhealthy"
    except Exception as exc:
        registry_status = f"unhealthy: {exc}"
        logger.error("health.registry_check_failed", error=str(exc))

    return HealthResponse(
        status="ok" if registry_status == "healthy" else "degraded",
        version=__version__,
        networks=settings.facilitator_network_list,
        registry=f"{registry.name}: {registry_status}",
    )
