"""Persistence for staking records and refresh runs."""

from decimal import Decimal

from sqlalchemy import Select, desc, func, select
from sqlalchemy.orm import Session

from db.enums import Category
from db.models import RefreshRuns, StakingRecords
from yieldbridge.services._helpers import dump_json, load_json_list, now_iso
from yieldbridge.services._types import RefreshRunDict, StakingRecordDict
from yieldbridge.services.schemas.chain import StakingTarget
from yieldbridge.services.schemas.results import RefreshReport

DEFAULT_CATEGORIES: tuple[str, ...] = (Category.STAKING.value, Category.STABLECOIN.value)


def staking_record_to_dict(row: StakingRecords) -> StakingRecordDict:
    return StakingRecordDict(
        id=row.id,
        protocolKey=row.protocol_key,
        tokenAddress=row.token_address,
        stakingAddress=row.staking_address,
        tokenSymbol=row.token_symbol,
        protocolName=row.protocol_name,
        chainName=row.chain_name,
        apy=float(row.apy),
        tvl=float(row.tvl),
        isStablecoin=bool(row.is_stablecoin),
        categories=[str(c) for c in load_json_list(row.categories)],
        logoUrl=row.logo_url,
        createdAt=row.created_at,
        updatedAt=row.updated_at,
    )


def refresh_run_to_dict(row: RefreshRuns) -> RefreshRunDict:
    return RefreshRunDict(
        runId=row.run_id,
        startedAt=row.started_at,
        completedAt=row.completed_at,
        status=row.status,
        attempted=row.attempted,
        succeeded=row.succeeded,
        skipped=row.skipped,
        failed=row.failed,
    )


class StakingStore:
    """Upsert-by-key and lookups over staking_records."""

    def __init__(self, session: Session) -> None:
        self.session: Session = session

    def upsert(self, target: StakingTarget, apy: float, tvl: Decimal | float) -> StakingRecords:
        """Create or update the row for target.protocol_key. Flushes, does not commit."""
        ts: str = now_iso()
        row: StakingRecords | None = self.session.scalar(
            select(StakingRecords).where(StakingRecords.protocol_key == target.protocol_key)
        )
        if row is None:
            row = StakingRecords(
                protocol_key=target.protocol_key,
                token_address=target.token_address,
                staking_address=target.staking_address,
                token_symbol=target.token_symbol,
                protocol_name=target.protocol_name,
                chain_name=target.chain_name,
                is_stablecoin=True,
                categories=dump_json(list(DEFAULT_CATEGORIES)),
                logo_url=target.logo_url,
                created_at=ts,
                updated_at=ts,
                apy=apy,
                tvl=Decimal(str(tvl)),
            )
            self.session.add(row)
        else:
            row.staking_address = target.staking_address
            row.token_address = target.token_address
            row.apy = apy
            row.tvl = Decimal(str(tvl))
            row.updated_at = ts
        self.session.flush()
        return row

    def list_all(self) -> list[StakingRecordDict]:
        stmt: Select[tuple[StakingRecords]] = select(StakingRecords).order_by(
            StakingRecords.protocol_key
        )
        return [staking_record_to_dict(r) for r in self.session.scalars(stmt).all()]

    def find_by_protocol_key(self, protocol_key: str) -> list[StakingRecordDict]:
        stmt: Select[tuple[StakingRecords]] = select(StakingRecords).where(
            StakingRecords.protocol_key == protocol_key
        )
        return [staking_record_to_dict(r) for r in self.session.scalars(stmt).all()]

    def find_by_staking_address(self, address: str) -> StakingRecordDict | None:
        stmt: Select[tuple[StakingRecords]] = (
            select(StakingRecords)
            .where(func.lower(StakingRecords.staking_address) == address.lower())
            .order_by(StakingRecords.protocol_key)
            .limit(1)
        )
        row: StakingRecords | None = self.session.scalar(stmt)
        return staking_record_to_dict(row) if row else None

    def count(self) -> int:
        return self.session.scalar(select(func.count()).select_from(StakingRecords)) or 0

    # ------------------------------------------------------------------
    # Refresh runs
    # ------------------------------------------------------------------

    def record_run(self, report: RefreshReport, status: str) -> RefreshRuns:
        run: RefreshRuns = RefreshRuns(
            run_id=report.run_id,
            started_at=report.started_at,
            completed_at=report.finished_at,
            status=status,
            attempted=report.attempted,
            succeeded=report.succeeded,
            skipped=report.skipped,
            failed=report.failed,
            error_details=dump_json([f.to_dict() for f in report.failures])
            if report.failures
            else None,
        )
        self.session.add(run)
        self.session.flush()
        return run

    def list_runs(self, limit: int = 20) -> list[RefreshRunDict]:
        stmt: Select[tuple[RefreshRuns]] = (
            select(RefreshRuns).order_by(desc(RefreshRuns.started_at)).limit(limit)
        )
        return [refresh_run_to_dict(r) for r in self.session.scalars(stmt).all()]
