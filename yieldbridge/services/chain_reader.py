"""Read-only access to staking contracts over EVM JSON-RPC."""

import asyncio
from typing import Protocol

import aiohttp
import structlog
from web3 import AsyncHTTPProvider, AsyncWeb3

from config import get_settings
from yieldbridge.services._helpers import redact_url
from yieldbridge.services.errors import ReadUnavailable
from yieldbridge.services.schemas.chain import StakingMetrics

logger = structlog.get_logger(__name__)

STAKING_ABI: list[dict[str, object]] = [
    {
        "type": "function",
        "name": "fixedAPY",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint8"}],
    },
    {
        "type": "function",
        "name": "totalAmountStaked",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
    },
]


class MetricsReader(Protocol):
    async def fetch_metrics(self, endpoint: str, contract_address: str) -> StakingMetrics: ...


class ChainReader:
    """Reads fixedAPY() and totalAmountStaked() from one contract per call.

    One AsyncWeb3 client is kept per endpoint so targets on the same network
    share an HTTP session. Calls are single attempts; retry policy belongs to
    the caller.
    """

    def __init__(self, rpc_timeout: int | None = None) -> None:
        settings = get_settings()
        self.rpc_timeout: int = rpc_timeout or settings.chain.rpc_timeout
        self._clients: dict[str, AsyncWeb3] = {}

    def _client(self, endpoint: str) -> AsyncWeb3:
        client: AsyncWeb3 | None = self._clients.get(endpoint)
        if client is None:
            provider = AsyncHTTPProvider(
                endpoint,
                request_kwargs={"timeout": aiohttp.ClientTimeout(total=self.rpc_timeout)},
                exception_retry_configuration=None,
            )
            client = AsyncWeb3(provider)
            self._clients[endpoint] = client
        return client

    async def fetch_metrics(self, endpoint: str, contract_address: str) -> StakingMetrics:
        """Return the raw yield rate and total staked amount of one contract.

        Raises ReadUnavailable when the address is malformed, the endpoint is
        unreachable, or either call reverts or returns undecodable data.
        """
        if not endpoint:
            raise ReadUnavailable("No RPC endpoint configured")
        if not AsyncWeb3.is_address(contract_address):
            raise ReadUnavailable(f"Not a contract address: {contract_address!r}")

        w3: AsyncWeb3 = self._client(endpoint)
        contract = w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(contract_address),
            abi=STAKING_ABI,
        )
        try:
            apy, total_staked = await asyncio.gather(
                contract.functions.fixedAPY().call(),
                contract.functions.totalAmountStaked().call(),
            )
        except Exception as e:
            logger.debug(
                "Staking contract read failed",
                endpoint=redact_url(endpoint),
                contract=contract_address,
                error=str(e)[:200],
            )
            raise ReadUnavailable(
                f"Read of {contract_address} via {redact_url(endpoint)} failed: "
                f"{type(e).__name__}: {e}"
            ) from e

        return StakingMetrics(yield_rate_percent=int(apy), total_staked_raw=int(total_staked))

    async def close(self) -> None:
        """Close the HTTP sessions held by cached clients."""
        clients = list(self._clients.values())
        self._clients.clear()
        for client in clients:
            await client.provider.disconnect()
