"""Concurrent refresh of staking metrics across every registered deployment.

Each target is fetched, normalized and upserted independently. A failing
target ends up in the report's failure list; it never stops, delays or rolls
back the others. refresh_all returns only after every target has settled.

Store writes are blocking SQLAlchemy calls. They run on one dedicated writer
thread so the event loop keeps serving other work while they commit, and
SQLite sees a single writer.
"""

import asyncio
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from config import get_settings
from db.connection import get_session
from db.enums import RefreshErrorType, RunStatus
from yieldbridge.services._helpers import new_id, now_iso
from yieldbridge.services.chain_reader import ChainReader, MetricsReader
from yieldbridge.services.errors import ReadUnavailable, StoreError
from yieldbridge.services.registry import Registry, default_registry
from yieldbridge.services.schemas.chain import StakingMetrics, StakingTarget
from yieldbridge.services.schemas.results import RefreshFailure, RefreshOutcome, RefreshReport
from yieldbridge.services.staking_store import StakingStore

logger = structlog.get_logger(__name__)

TOKEN_DECIMALS: int = 18

_store_executor: ThreadPoolExecutor = ThreadPoolExecutor(
    max_workers=1, thread_name_prefix="staking-store"
)


def normalize_metrics(metrics: StakingMetrics) -> tuple[int, Decimal]:
    """Whole-percent APY and TVL scaled down by the token decimals."""
    apy: int = int(metrics.yield_rate_percent)
    tvl: Decimal = Decimal(metrics.total_staked_raw).scaleb(-TOKEN_DECIMALS)
    return apy, tvl


class AggregationService:
    """Refreshes staking_records from on-chain reads."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        registry: Iterable[StakingTarget] | None = None,
        reader: MetricsReader | None = None,
        target_timeout: float | None = None,
    ) -> None:
        settings = get_settings()
        self.session_factory: sessionmaker[Session] = session_factory
        self.registry: Registry = (
            tuple(registry) if registry is not None else default_registry(settings)
        )
        self.reader: MetricsReader = reader or ChainReader()
        self.target_timeout: float | None = (
            target_timeout if target_timeout is not None else settings.chain.target_timeout
        )

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------

    async def _fetch(self, target: StakingTarget) -> StakingMetrics:
        call = self.reader.fetch_metrics(target.rpc_url, target.staking_address)
        if self.target_timeout is None:
            return await call
        try:
            return await asyncio.wait_for(call, timeout=self.target_timeout)
        except TimeoutError as e:
            raise ReadUnavailable(f"No response within {self.target_timeout}s") from e

    async def _in_store_thread(self, fn: Callable[..., None], *args: object) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(_store_executor, fn, *args)

    def _persist(self, target: StakingTarget, apy: int, tvl: Decimal) -> None:
        try:
            with get_session(self.session_factory) as session:
                StakingStore(session).upsert(target, apy=float(apy), tvl=tvl)
        except SQLAlchemyError as e:
            raise StoreError(f"Upsert of {target.protocol_key} failed: {e}") from e

    async def refresh_one(self, index: int) -> RefreshOutcome:
        """Fetch, normalize and upsert one target. Failures come back as outcomes."""
        target: StakingTarget = self.registry[index]
        key: str = target.protocol_key

        if not target.has_endpoint:
            logger.warning(
                "Missing RPC URL, target skipped",
                protocol=target.protocol_name,
                chain=target.chain_name,
            )
            return RefreshOutcome(
                index=index,
                protocol_key=key,
                ok=False,
                skipped=True,
                error_type=RefreshErrorType.MISSING_ENDPOINT.value,
                error=f"Missing RPC URL for {target.protocol_name} on {target.chain_name}",
            )

        try:
            metrics: StakingMetrics = await self._fetch(target)
        except ReadUnavailable as e:
            logger.warning("Staking read unavailable", protocol_key=key, error=str(e)[:200])
            return RefreshOutcome(
                index=index,
                protocol_key=key,
                ok=False,
                error_type=RefreshErrorType.READ_UNAVAILABLE.value,
                error=str(e),
            )

        apy, tvl = normalize_metrics(metrics)

        try:
            await self._in_store_thread(self._persist, target, apy, tvl)
        except StoreError as e:
            logger.error("Staking upsert failed", protocol_key=key, error=str(e)[:200])
            return RefreshOutcome(
                index=index,
                protocol_key=key,
                ok=False,
                error_type=RefreshErrorType.STORE_ERROR.value,
                error=str(e),
            )

        logger.info(
            "Updated staking data",
            protocol=target.protocol_name,
            chain=target.chain_name,
            apy=apy,
            tvl=str(tvl),
        )
        return RefreshOutcome(index=index, protocol_key=key, ok=True, apy=apy, tvl=tvl)

    # ------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------

    def _failure(self, outcome: RefreshOutcome) -> RefreshFailure:
        target: StakingTarget = self.registry[outcome.index]
        return RefreshFailure(
            index=outcome.index,
            protocol_key=outcome.protocol_key,
            protocol_name=target.protocol_name,
            chain_name=target.chain_name,
            staking_address=target.staking_address,
            error_type=outcome.error_type or "Unknown",
            reason=outcome.error or "",
        )

    async def refresh_all(self) -> RefreshReport:
        """Refresh every target concurrently and report which ones failed."""
        run_id: str = new_id()
        started_at: str = now_iso()
        logger.info("Starting staking refresh", run_id=run_id, targets=len(self.registry))

        settled: list[RefreshOutcome | BaseException] = await asyncio.gather(
            *(self.refresh_one(i) for i in range(len(self.registry))),
            return_exceptions=True,
        )

        outcomes: list[RefreshOutcome] = []
        for index, result in enumerate(settled):
            if isinstance(result, RefreshOutcome):
                outcomes.append(result)
                continue
            if not isinstance(result, Exception):
                raise result
            logger.error(
                "Unexpected refresh failure",
                protocol_key=self.registry[index].protocol_key,
                exc_info=result,
            )
            outcomes.append(
                RefreshOutcome(
                    index=index,
                    protocol_key=self.registry[index].protocol_key,
                    ok=False,
                    error_type=type(result).__name__,
                    error=str(result),
                )
            )

        skipped: int = sum(1 for o in outcomes if o.skipped)
        report: RefreshReport = RefreshReport(
            run_id=run_id,
            total=len(self.registry),
            attempted=len(outcomes) - skipped,
            succeeded=sum(1 for o in outcomes if o.ok),
            skipped=skipped,
            started_at=started_at,
            finished_at=now_iso(),
            failures=[self._failure(o) for o in outcomes if not o.ok],
        )

        await self._in_store_thread(self._record_run, report)

        if report.failures:
            logger.warning(
                "Some staking updates failed",
                run_id=run_id,
                failed=report.failed,
                keys=[f.protocol_key for f in report.failures],
            )
        logger.info(
            "Staking refresh complete",
            run_id=run_id,
            attempted=report.attempted,
            succeeded=report.succeeded,
            skipped=report.skipped,
        )
        return report

    def _record_run(self, report: RefreshReport) -> None:
        if not report.failures:
            status = RunStatus.SUCCESS
        elif report.succeeded:
            status = RunStatus.PARTIAL
        else:
            status = RunStatus.FAILED
        try:
            with get_session(self.session_factory) as session:
                StakingStore(session).record_run(report, status.value)
        except SQLAlchemyError as e:
            raise StoreError(f"Could not record refresh run {report.run_id}: {e}") from e
