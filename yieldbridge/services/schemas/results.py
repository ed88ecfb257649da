"""Result dataclasses returned by service operations."""

from dataclasses import dataclass, field
from decimal import Decimal

from yieldbridge.services._types import RefreshFailureDict, RefreshReportDict


@dataclass
class RefreshOutcome:
    """Settled result of one target's refresh. Never raised, always returned."""

    index: int
    protocol_key: str
    ok: bool
    skipped: bool = False
    error_type: str | None = None
    error: str | None = None
    apy: int | None = None
    tvl: Decimal | None = None


@dataclass
class RefreshFailure:
    index: int
    protocol_key: str
    protocol_name: str
    chain_name: str
    staking_address: str
    error_type: str
    reason: str

    def to_dict(self) -> RefreshFailureDict:
        return RefreshFailureDict(
            index=self.index,
            protocolKey=self.protocol_key,
            protocolName=self.protocol_name,
            chainName=self.chain_name,
            stakingAddress=self.staking_address,
            errorType=self.error_type,
            reason=self.reason,
        )


@dataclass
class RefreshReport:
    run_id: str
    total: int
    attempted: int
    succeeded: int
    skipped: int
    started_at: str
    finished_at: str
    failures: list[RefreshFailure] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failures)

    def to_dict(self) -> RefreshReportDict:
        if not self.failures:
            message = "All staking data updated successfully"
        elif self.succeeded:
            message = "Staking data partially updated"
        else:
            message = "No staking data updated"
        return RefreshReportDict(
            runId=self.run_id,
            message=message,
            total=self.total,
            attempted=self.attempted,
            succeeded=self.succeeded,
            skipped=self.skipped,
            failed=self.failed,
            failures=[f.to_dict() for f in self.failures],
            startedAt=self.started_at,
            finishedAt=self.finished_at,
        )
