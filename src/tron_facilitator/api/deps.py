"""FastAPI dependency injection providers.

These are used with Depends() in route handlers to inject the facilitator,
the settled-transaction registry and configuration. Tests replace them via
``app.dependency_overrides``.
"""

from __future__ import annotations

from tron_facilitator.config import Settings, get_settings
from tron_facilitator.infrastructure.settlement_registry import (
    SettlementRegistry,
    get_registry,
)
from tron_facilitator.services.facilitator_service import (
    ExactTronFacilitator,
    get_facilitator,
)


def get_exact_facilitator() -> ExactTronFacilitator:
    """Provide the exact-scheme facilitator."""
    return get_facilitator()


def get_settlement_registry() -> SettlementRegistry:
    """Provide the settled-transaction registry."""
    return get_registry()


def get_app_settings() -> Settings:
    """Provide the application settings."""
    return get_settings()
