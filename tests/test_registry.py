"""Tests for the deployment registry and worker target selection."""

import pytest

from config import ChainSettings, Settings
from worker.refresh_staking import select_targets
from yieldbridge.services.registry import BASE_SEPOLIA, DEPLOYMENTS, default_registry
from yieldbridge.services.schemas.chain import ETH_LOGO_URL, ZERO_ADDRESS, StakingTarget


def _settings(**urls: str) -> Settings:
    return Settings(chain=ChainSettings(**urls))


class TestDefaultRegistry:
    def test_one_target_per_deployment(self) -> None:
        registry = default_registry(_settings())
        assert len(registry) == len(DEPLOYMENTS) == 7
        assert len({t.protocol_key for t in registry}) == 7

    def test_static_fields(self) -> None:
        target: StakingTarget = default_registry(_settings())[0]
        assert target.token_address == ZERO_ADDRESS
        assert target.token_symbol == "ETH"
        assert target.logo_url == ETH_LOGO_URL
        assert target.protocol_key == "RockX_Arbitrum Sepolia"

    def test_rpc_urls_come_from_settings(self) -> None:
        registry = default_registry(
            _settings(base_sepolia_rpc_url="https://base.test", arbitrum_sepolia_rpc_url="")
        )
        for target in registry:
            if target.chain_name == BASE_SEPOLIA:
                assert target.rpc_url == "https://base.test"
                assert target.has_endpoint
            elif target.chain_name == "Arbitrum Sepolia":
                assert not target.has_endpoint

    def test_env_aliases(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DECAF_TESTNET_RPC_URL", "https://decaf.test")
        chain: ChainSettings = ChainSettings()
        assert chain.decaf_testnet_rpc_url == "https://decaf.test"


class TestSelectTargets:
    def test_no_filter_keeps_all(self) -> None:
        registry = default_registry(_settings())
        assert select_targets(registry, None) == registry

    def test_by_name_or_key_case_insensitive(self) -> None:
        registry = default_registry(_settings())
        picked = select_targets(registry, ["morpho", "Veda_Decaf Testnet"])
        assert [t.protocol_name for t in picked] == ["Veda", "Morpho"]

    def test_unknown_name_selects_nothing(self) -> None:
        assert select_targets(default_registry(_settings()), ["Nope"]) == ()
