"""Enumeration types for the yieldbridge service."""

from enum import Enum


class Category(str, Enum):
    """Tags attached to staking records."""

    STAKING = "Staking"
    STABLECOIN = "Stablecoin"


class RefreshErrorType(str, Enum):
    """Why a single target dropped out of a refresh pass."""

    MISSING_ENDPOINT = "MissingEndpoint"
    READ_UNAVAILABLE = "ReadUnavailable"
    STORE_ERROR = "StoreError"


class RunStatus(str, Enum):
    """Outcome of a whole refresh pass."""

    RUNNING = "running"
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"
