"""Tests for yieldbridge.services.aggregation."""

import asyncio
import time
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

from db.enums import RefreshErrorType, RunStatus
from db.models import RefreshRuns, StakingRecords
from tests.fakes import FakeReader, make_targets
from yieldbridge.services import aggregation as aggregation_module
from yieldbridge.services.aggregation import AggregationService, normalize_metrics
from yieldbridge.services.schemas.chain import StakingMetrics, StakingTarget
from yieldbridge.services.schemas.results import RefreshOutcome, RefreshReport


def _rows(session_factory: sessionmaker[Session]) -> list[StakingRecords]:
    with session_factory() as s:
        return list(s.scalars(select(StakingRecords).order_by(StakingRecords.protocol_key)))


def _count(session_factory: sessionmaker[Session]) -> int:
    with session_factory() as s:
        return s.scalar(select(func.count()).select_from(StakingRecords)) or 0


class TestNormalize:
    def test_scales_tvl_by_18_decimals(self) -> None:
        apy, tvl = normalize_metrics(StakingMetrics(12, 1_500_000_000_000_000_000))
        assert apy == 12
        assert tvl == Decimal("1.5")

    def test_keeps_sub_unit_precision(self) -> None:
        _, tvl = normalize_metrics(StakingMetrics(0, 1))
        assert tvl == Decimal("1E-18")


class TestRefreshOne:
    @pytest.mark.asyncio
    async def test_success_creates_row(self, session_factory: sessionmaker[Session]) -> None:
        targets: tuple[StakingTarget, ...] = make_targets(1)
        svc = AggregationService(session_factory, registry=targets, reader=FakeReader())

        outcome: RefreshOutcome = await svc.refresh_one(0)

        assert outcome.ok
        assert outcome.apy == 5
        assert outcome.tvl == Decimal(2)
        rows = _rows(session_factory)
        assert len(rows) == 1
        assert rows[0].protocol_key == "Proto0_Test Chain"
        assert rows[0].tvl == 2.0
        assert rows[0].is_stablecoin is True

    @pytest.mark.asyncio
    async def test_missing_endpoint_is_skipped(self, session_factory: sessionmaker[Session]) -> None:
        reader = FakeReader()
        svc = AggregationService(session_factory, registry=make_targets(1, rpc_url=""), reader=reader)

        outcome: RefreshOutcome = await svc.refresh_one(0)

        assert not outcome.ok
        assert outcome.skipped
        assert outcome.error_type == RefreshErrorType.MISSING_ENDPOINT.value
        assert reader.calls == []
        assert _count(session_factory) == 0

    @pytest.mark.asyncio
    async def test_read_failure_is_captured(self, session_factory: sessionmaker[Session]) -> None:
        targets = make_targets(1)
        reader = FakeReader(failing={targets[0].staking_address})
        svc = AggregationService(session_factory, registry=targets, reader=reader)

        outcome: RefreshOutcome = await svc.refresh_one(0)

        assert not outcome.ok
        assert outcome.error_type == RefreshErrorType.READ_UNAVAILABLE.value
        assert "reverted" in (outcome.error or "")
        assert _count(session_factory) == 0

    @pytest.mark.asyncio
    async def test_store_failure_is_captured(
        self, session_factory: sessionmaker[Session], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def _boom(self: object, target: StakingTarget, apy: float, tvl: float) -> None:
            raise OperationalError("INSERT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(aggregation_module.StakingStore, "upsert", _boom)
        svc = AggregationService(session_factory, registry=make_targets(1), reader=FakeReader())

        outcome: RefreshOutcome = await svc.refresh_one(0)

        assert not outcome.ok
        assert outcome.error_type == RefreshErrorType.STORE_ERROR.value

    @pytest.mark.asyncio
    async def test_index_out_of_range(self, session_factory: sessionmaker[Session]) -> None:
        svc = AggregationService(session_factory, registry=make_targets(2), reader=FakeReader())
        with pytest.raises(IndexError):
            await svc.refresh_one(2)


class TestRefreshAll:
    @pytest.mark.asyncio
    async def test_isolates_a_failing_target(self, session_factory: sessionmaker[Session]) -> None:
        targets = make_targets(5)
        k: int = 2
        reader = FakeReader(failing={targets[k].staking_address})
        svc = AggregationService(session_factory, registry=targets, reader=reader)

        report: RefreshReport = await svc.refresh_all()

        assert report.total == 5
        assert report.attempted == 5
        assert report.succeeded == 4
        assert report.failed == 1
        failure = report.failures[0]
        assert failure.index == k
        assert failure.protocol_key == targets[k].protocol_key
        assert failure.staking_address == targets[k].staking_address
        assert failure.error_type == "ReadUnavailable"

        keys: set[str] = {r.protocol_key for r in _rows(session_factory)}
        assert keys == {t.protocol_key for i, t in enumerate(targets) if i != k}

    @pytest.mark.asyncio
    async def test_second_refresh_updates_in_place(
        self, session_factory: sessionmaker[Session]
    ) -> None:
        targets = make_targets(3)
        svc = AggregationService(session_factory, registry=targets, reader=FakeReader())

        await svc.refresh_all()
        first: dict[str, str] = {r.protocol_key: r.updated_at for r in _rows(session_factory)}
        first_ids: dict[str, str] = {r.protocol_key: r.id for r in _rows(session_factory)}
        await asyncio.sleep(0.01)
        await svc.refresh_all()

        rows = _rows(session_factory)
        assert len(rows) == 3
        for row in rows:
            assert row.id == first_ids[row.protocol_key]
            assert row.updated_at > first[row.protocol_key]
            assert row.created_at <= first[row.protocol_key]

    @pytest.mark.asyncio
    async def test_new_values_overwrite_old(self, session_factory: sessionmaker[Session]) -> None:
        targets = make_targets(1)
        addr: str = targets[0].staking_address
        reader = FakeReader(metrics={addr: StakingMetrics(3, 10**18)})
        svc = AggregationService(session_factory, registry=targets, reader=reader)
        await svc.refresh_all()

        reader.metrics[addr] = StakingMetrics(9, 4 * 10**18)
        await svc.refresh_all()

        (row,) = _rows(session_factory)
        assert row.apy == 9
        assert row.tvl == 4.0

    @pytest.mark.asyncio
    async def test_failed_refresh_keeps_previous_row(
        self, session_factory: sessionmaker[Session]
    ) -> None:
        targets = make_targets(1)
        reader = FakeReader(metrics={targets[0].staking_address: StakingMetrics(3, 10**18)})
        svc = AggregationService(session_factory, registry=targets, reader=reader)
        await svc.refresh_all()

        reader.failing.add(targets[0].staking_address)
        report: RefreshReport = await svc.refresh_all()

        assert report.succeeded == 0
        (row,) = _rows(session_factory)
        assert row.apy == 3

    @pytest.mark.asyncio
    async def test_skipped_targets_are_reported(
        self, session_factory: sessionmaker[Session]
    ) -> None:
        targets = make_targets(2) + (
            StakingTarget(
                staking_address="0x" + "ee" * 20,
                protocol_name="NoRpc",
                chain_name="Dark Chain",
                rpc_url="  ",
            ),
        )
        svc = AggregationService(session_factory, registry=targets, reader=FakeReader())

        report: RefreshReport = await svc.refresh_all()

        assert report.total == 3
        assert report.attempted == 2
        assert report.skipped == 1
        assert report.succeeded == 2
        assert [f.error_type for f in report.failures] == ["MissingEndpoint"]
        assert _count(session_factory) == 2

    @pytest.mark.asyncio
    async def test_waits_for_slow_targets(self, session_factory: sessionmaker[Session]) -> None:
        targets = make_targets(3)
        order: list[str] = []

        class SlowFirst(FakeReader):
            async def fetch_metrics(self, endpoint: str, contract_address: str) -> StakingMetrics:
                if contract_address == targets[0].staking_address:
                    await asyncio.sleep(0.05)
                order.append(contract_address)
                return await super().fetch_metrics(endpoint, contract_address)

        svc = AggregationService(session_factory, registry=targets, reader=SlowFirst())
        report: RefreshReport = await svc.refresh_all()

        assert report.succeeded == 3
        assert order[-1] == targets[0].staking_address

    @pytest.mark.asyncio
    async def test_timeout_reports_only_the_hung_target(
        self, session_factory: sessionmaker[Session]
    ) -> None:
        targets = make_targets(3)

        class Hung(FakeReader):
            async def fetch_metrics(self, endpoint: str, contract_address: str) -> StakingMetrics:
                if contract_address == targets[1].staking_address:
                    await asyncio.sleep(10)
                return await super().fetch_metrics(endpoint, contract_address)

        svc = AggregationService(
            session_factory, registry=targets, reader=Hung(), target_timeout=0.05
        )
        report: RefreshReport = await svc.refresh_all()

        assert report.succeeded == 2
        assert [f.index for f in report.failures] == [1]
        assert report.failures[0].error_type == "ReadUnavailable"

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_contained(
        self, session_factory: sessionmaker[Session]
    ) -> None:
        targets = make_targets(2)

        class Broken(FakeReader):
            async def fetch_metrics(self, endpoint: str, contract_address: str) -> StakingMetrics:
                if contract_address == targets[0].staking_address:
                    raise KeyError("decoder")
                return await super().fetch_metrics(endpoint, contract_address)

        svc = AggregationService(session_factory, registry=targets, reader=Broken())
        report: RefreshReport = await svc.refresh_all()

        assert report.succeeded == 1
        assert report.failures[0].error_type == "KeyError"

    @pytest.mark.asyncio
    async def test_store_writes_do_not_block_the_loop(
        self, session_factory: sessionmaker[Session], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        real_upsert = aggregation_module.StakingStore.upsert

        def _slow_upsert(self: object, *args: object, **kwargs: object) -> object:
            time.sleep(0.05)
            return real_upsert(self, *args, **kwargs)  # type: ignore[arg-type]

        monkeypatch.setattr(aggregation_module.StakingStore, "upsert", _slow_upsert)
        svc = AggregationService(session_factory, registry=make_targets(5), reader=FakeReader())

        ticks: list[int] = []
        done = asyncio.Event()

        async def heartbeat() -> None:
            while not done.is_set():
                ticks.append(1)
                await asyncio.sleep(0.005)

        beat = asyncio.create_task(heartbeat())
        report: RefreshReport = await svc.refresh_all()
        done.set()
        await beat

        assert report.succeeded == 5
        # five 50ms writes leave room for far more than a handful of 5ms ticks
        assert len(ticks) >= 10

    @pytest.mark.asyncio
    async def test_tvl_is_stored_exactly(self, session_factory: sessionmaker[Session]) -> None:
        targets = make_targets(1)
        raw: int = 10**30 + 1
        reader = FakeReader(metrics={targets[0].staking_address: StakingMetrics(4, raw)})
        svc = AggregationService(session_factory, registry=targets, reader=reader)

        await svc.refresh_all()

        (row,) = _rows(session_factory)
        assert row.tvl == Decimal("1000000000000.000000000000000001")

    @pytest.mark.asyncio
    async def test_run_is_recorded(self, session_factory: sessionmaker[Session]) -> None:
        targets = make_targets(2)
        reader = FakeReader(failing={targets[0].staking_address})
        svc = AggregationService(session_factory, registry=targets, reader=reader)

        report: RefreshReport = await svc.refresh_all()

        with session_factory() as s:
            run: RefreshRuns | None = s.get(RefreshRuns, report.run_id)
        assert run is not None
        assert run.status == RunStatus.PARTIAL.value
        assert run.succeeded == 1
        assert run.failed == 1
        assert run.error_details is not None

    @pytest.mark.asyncio
    async def test_all_failed_status(self, session_factory: sessionmaker[Session]) -> None:
        targets = make_targets(2)
        reader = FakeReader(failing={t.staking_address for t in targets})
        svc = AggregationService(session_factory, registry=targets, reader=reader)

        report: RefreshReport = await svc.refresh_all()

        assert report.to_dict()["message"] == "No staking data updated"
        with session_factory() as s:
            run = s.get(RefreshRuns, report.run_id)
        assert run is not None and run.status == RunStatus.FAILED.value

    @pytest.mark.asyncio
    async def test_empty_registry(self, session_factory: sessionmaker[Session]) -> None:
        svc = AggregationService(session_factory, registry=(), reader=FakeReader())
        report: RefreshReport = await svc.refresh_all()
        assert report.total == 0
        assert report.failures == []

