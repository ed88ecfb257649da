"""Shared dataclasses for yieldbridge services."""

from yieldbridge.services.schemas.chain import StakingMetrics, StakingTarget
from yieldbridge.services.schemas.orders import OrderRecord
from yieldbridge.services.schemas.results import RefreshFailure, RefreshOutcome, RefreshReport

__all__ = [
    # Chain schemas
    "StakingMetrics",
    "StakingTarget",
    # Order schemas
    "OrderRecord",
    # Result schemas
    "RefreshFailure",
    "RefreshOutcome",
    "RefreshReport",
]
