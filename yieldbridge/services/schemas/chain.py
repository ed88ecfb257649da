"""Chain-related data transfer objects."""

from dataclasses import dataclass

ZERO_ADDRESS: str = "0x0000000000000000000000000000000000000000"
ETH_LOGO_URL: str = "https://s2.coinmarketcap.com/static/img/coins/64x64/1027.png"


@dataclass(frozen=True)
class StakingTarget:
    """One (network, contract, protocol) tuple whose metrics are read."""

    staking_address: str
    protocol_name: str
    chain_name: str
    rpc_url: str
    token_address: str = ZERO_ADDRESS
    token_symbol: str = "ETH"
    logo_url: str | None = ETH_LOGO_URL

    @property
    def protocol_key(self) -> str:
        return f"{self.protocol_name}_{self.chain_name}"

    @property
    def has_endpoint(self) -> bool:
        return bool(self.rpc_url.strip())


@dataclass(frozen=True)
class StakingMetrics:
    """Raw values returned by the staking contract."""

    yield_rate_percent: int
    total_staked_raw: int
