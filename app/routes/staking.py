"""Staking endpoints — thin routes, logic in services."""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session, sessionmaker

from app.dependencies import (
    get_api_key,
    get_chain_reader,
    get_db,
    get_registry,
    get_session_factory,
)
from app.schemas.staking import (
    RefreshReportResponse,
    RefreshRunResponse,
    StakingRecordResponse,
)
from yieldbridge.services._types import RefreshReportDict, RefreshRunDict, StakingRecordDict
from yieldbridge.services.aggregation import AggregationService
from yieldbridge.services.chain_reader import ChainReader
from yieldbridge.services.registry import Registry
from yieldbridge.services.staking_store import StakingStore

router: APIRouter = APIRouter(prefix="/staking", tags=["staking"])


@router.get("", response_model=list[StakingRecordResponse])
def list_staking(db: Session = Depends(get_db)) -> list[StakingRecordDict]:
    return StakingStore(db).list_all()


@router.get("/runs", response_model=list[RefreshRunResponse])
def list_refresh_runs(
    limit: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
) -> list[RefreshRunDict]:
    return StakingStore(db).list_runs(limit=limit)


@router.get("/protocol/{protocol_key}", response_model=list[StakingRecordResponse])
def get_by_protocol(protocol_key: str, db: Session = Depends(get_db)):
    records: list[StakingRecordDict] = StakingStore(db).find_by_protocol_key(protocol_key)
    if not records:
        return JSONResponse(status_code=404, content={"error": "Staking data not found"})
    return records


@router.get("/address/{address}", response_model=StakingRecordResponse)
def get_by_address(address: str, db: Session = Depends(get_db)):
    record: StakingRecordDict | None = StakingStore(db).find_by_staking_address(address)
    if record is None:
        return JSONResponse(status_code=404, content={"error": "Staking data not found"})
    return record


@router.post("/update", response_model=RefreshReportResponse)
async def update_staking(
    session_factory: sessionmaker[Session] = Depends(get_session_factory),
    registry: Registry = Depends(get_registry),
    reader: ChainReader = Depends(get_chain_reader),
    _key: str = Depends(get_api_key),
) -> RefreshReportDict:
    svc: AggregationService = AggregationService(session_factory, registry=registry, reader=reader)
    report = await svc.refresh_all()
    return report.to_dict()
