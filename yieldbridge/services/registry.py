"""Static registry of staking deployments read by the aggregator."""

from config import ChainSettings, Settings, get_settings
from yieldbridge.services.schemas.chain import StakingTarget

ARBITRUM_SEPOLIA: str = "Arbitrum Sepolia"
DECAF_TESTNET: str = "Decaf Testnet"
BASE_SEPOLIA: str = "Base Sepolia"

# (staking contract, protocol, chain)
DEPLOYMENTS: tuple[tuple[str, str, str], ...] = (
    ("0x5B4eFE4627d52D22a37da74Ee480CdC1F7bd15a6", "RockX", ARBITRUM_SEPOLIA),
    ("0x0c2470065cAD1CdE95062E1203B631C3a06B4f79", "Camelot", ARBITRUM_SEPOLIA),
    ("0x944c0F40efFd73Fb5Cb02851ce7CcA0e30a61D3D", "Veda", DECAF_TESTNET),
    ("0xBcBe5DE4D9F8F9336924eCB90888a775DfB06Eb9", "Hord", DECAF_TESTNET),
    ("0x86dD79C7D39b6140c4831821d0f4F8C69e0A1B73", "Morpho", BASE_SEPOLIA),
    ("0xce953102336f666a0cbAe4B2F7BF72a8dcDC72F5", "Aave", BASE_SEPOLIA),
    ("0x71109FCe837d72D2c9212A60cC4Bd01437bEA3D6", "Pendle", BASE_SEPOLIA),
)

Registry = tuple[StakingTarget, ...]


def chain_endpoints(chain: ChainSettings) -> dict[str, str]:
    return {
        ARBITRUM_SEPOLIA: chain.arbitrum_sepolia_rpc_url,
        DECAF_TESTNET: chain.decaf_testnet_rpc_url,
        BASE_SEPOLIA: chain.base_sepolia_rpc_url,
    }


def default_registry(settings: Settings | None = None) -> Registry:
    """Build the deployment registry with RPC URLs taken from settings."""
    endpoints: dict[str, str] = chain_endpoints((settings or get_settings()).chain)
    return tuple(
        StakingTarget(
            staking_address=staking,
            protocol_name=protocol,
            chain_name=chain_name,
            rpc_url=endpoints.get(chain_name, ""),
        )
        for staking, protocol, chain_name in DEPLOYMENTS
    )
