"""Typed dicts for service-layer return values.

Keeps route-facing methods explicit about their shape instead of returning bare dicts.
"""

import sys

if sys.version_info >= (3, 12):
    from typing import TypedDict
else:
    from typing_extensions import TypedDict

# -- Staking store -----------------------------------------------------------


class StakingRecordDict(TypedDict):
    id: str
    protocolKey: str
    tokenAddress: str
    stakingAddress: str
    tokenSymbol: str
    protocolName: str
    chainName: str
    apy: float
    tvl: float
    isStablecoin: bool
    categories: list[str]
    logoUrl: str | None
    createdAt: str
    updatedAt: str


class RefreshRunDict(TypedDict):
    runId: str
    startedAt: str
    completedAt: str | None
    status: str
    attempted: int
    succeeded: int
    skipped: int
    failed: int


# -- Aggregation -------------------------------------------------------------


class RefreshFailureDict(TypedDict):
    index: int
    protocolKey: str
    protocolName: str
    chainName: str
    stakingAddress: str
    errorType: str
    reason: str


class RefreshReportDict(TypedDict):
    runId: str
    message: str
    total: int
    attempted: int
    succeeded: int
    skipped: int
    failed: int
    failures: list[RefreshFailureDict]
    startedAt: str
    finishedAt: str


# -- Orders ------------------------------------------------------------------


class OrderPayloadDict(TypedDict):
    fillDeadline: str
    orderDataType: str
    orderData: str


class OrderResponseDict(TypedDict):
    order: OrderPayloadDict


# -- Health ------------------------------------------------------------------


class DbInfoDict(TypedDict, total=False):
    backend_type: str
    database_url_or_path: str | None
    tables_present: list[str]
    tables_missing: list[str]
    schema_initialized: bool
    pid: int
    error: str
