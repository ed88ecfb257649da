"""Staking record and refresh report schemas."""

from app.schemas.common import CamelModel


class StakingRecordResponse(CamelModel):
    id: str
    protocol_key: str
    token_address: str
    staking_address: str
    token_symbol: str
    protocol_name: str
    chain_name: str
    apy: float
    tvl: float
    is_stablecoin: bool
    categories: list[str]
    logo_url: str | None
    created_at: str
    updated_at: str


class RefreshFailureResponse(CamelModel):
    index: int
    protocol_key: str
    protocol_name: str
    chain_name: str
    staking_address: str
    error_type: str
    reason: str


class RefreshReportResponse(CamelModel):
    run_id: str
    message: str
    total: int
    attempted: int
    succeeded: int
    skipped: int
    failed: int
    failures: list[RefreshFailureResponse]
    started_at: str
    finished_at: str


class RefreshRunResponse(CamelModel):
    run_id: str
    started_at: str
    completed_at: str | None
    status: str
    attempted: int
    succeeded: int
    skipped: int
    failed: int
