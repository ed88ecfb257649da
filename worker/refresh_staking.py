"""Worker: refresh staking metrics for every registered deployment.

Usage:
    python -m worker.refresh_staking
    python -m worker.refresh_staking --only Morpho --only Aave
    python -m worker.refresh_staking --timeout 20 --json
"""

import argparse
import asyncio
import json
import sys

import structlog

from config import get_settings
from db.connection import get_session_factory
from migrations.migrate import migrate
from yieldbridge.services.aggregation import AggregationService
from yieldbridge.services.chain_reader import ChainReader
from yieldbridge.services.registry import Registry, default_registry
from yieldbridge.services.schemas.results import RefreshReport

logger = structlog.get_logger(__name__)


def select_targets(registry: Registry, only: list[str] | None) -> Registry:
    """Keep targets whose protocol name or protocol key is listed in only."""
    if not only:
        return registry
    wanted: set[str] = {name.lower() for name in only}
    return tuple(
        t for t in registry
        if t.protocol_name.lower() in wanted or t.protocol_key.lower() in wanted
    )


async def run(registry: Registry, timeout: float | None) -> RefreshReport:
    reader: ChainReader = ChainReader()
    try:
        service = AggregationService(
            get_session_factory(),
            registry=registry,
            reader=reader,
            target_timeout=timeout,
        )
        return await service.refresh_all()
    finally:
        await reader.close()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Refresh on-chain staking metrics")
    parser.add_argument(
        "--only", action="append", metavar="PROTOCOL",
        help="Refresh only this protocol name or protocol key (repeatable)",
    )
    parser.add_argument(
        "--timeout", type=float, default=None,
        help="Per-target timeout in seconds (default: CHAIN_TARGET_TIMEOUT or none)",
    )
    parser.add_argument("--json", action="store_true", help="Print the report as JSON")
    args = parser.parse_args(argv)

    settings = get_settings()
    registry: Registry = select_targets(default_registry(settings), args.only)
    if not registry:
        parser.error("No registered target matches --only")

    migrate()
    report: RefreshReport = asyncio.run(run(registry, args.timeout))

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    for failure in report.failures:
        logger.warning(
            "refresh_failure",
            protocol_key=failure.protocol_key,
            error_type=failure.error_type,
            reason=failure.reason,
        )
    return 0 if report.succeeded else 1


if __name__ == "__main__":
    sys.exit(main())
