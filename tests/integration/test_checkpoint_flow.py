"""Integration tests for snapshot -> deploy -> revert cycles."""

from pathlib import Path

import pytest

from chain_deployments.checkpoints import CheckpointManager
from chain_deployments.exceptions import CheckpointError, RegistryDivergenceError
from chain_deployments.funding import fund_accounts
from chain_deployments.mock_assets import MockAssets
from chain_deployments.orchestrator import Orchestrator
from chain_deployments.paths import get_checkpoint_path, get_mock_tokens_path
from chain_deployments.plan import load_plan
from chain_deployments.registry import ArtifactRegistry

ALICE = "0x" + "a1" * 20


@pytest.fixture
def checkpoints(chain, rpc, dev_settings, output_dir) -> CheckpointManager:
    return CheckpointManager(rpc, dev_settings, get_checkpoint_path(output_dir))


class TestCheckpointFlow:
    def test_revert_discards_deployments_and_balances(
        self, chain, rpc, checkpoints, orchestrator, fixtures_dir: Path, dev_settings
    ):
        """Test that revert removes deployed code and funded balances."""
        checkpoints.snapshot()

        orchestrator.run(load_plan(fixtures_dir / "plans" / "errors_registry.json"))
        fund_accounts(rpc, dev_settings, [ALICE], 10**18, method="hardhat_setBalance")
        errors_addr = orchestrator.registry.address_of("Errors")
        assert rpc.get_code(errors_addr) != "0x"
        assert rpc.get_balance(ALICE) == 10**18

        checkpoints.revert()

        assert rpc.get_code(errors_addr) == "0x"
        assert rpc.get_balance(ALICE) == 0

    def test_revert_discards_mints(self, chain, checkpoints, orchestrator, output_dir):
        """Test that revert removes mock token mints."""
        assets = MockAssets.deploy(orchestrator, get_mock_tokens_path(output_dir))
        checkpoints.snapshot()

        assets.mint20(ALICE, 5)
        assert assets.token.call("balanceOf", ALICE) == 5 * 10**18

        checkpoints.revert()
        assert assets.token.call("balanceOf", ALICE) == 0

    def test_snapshot_is_single_use_without_resnapshot(self, chain, checkpoints):
        """Test that a snapshot can only be reverted to once."""
        checkpoints.snapshot()
        checkpoints.revert()

        with pytest.raises(CheckpointError):
            checkpoints.revert()

    def test_resnapshot_allows_repeated_cycles(self, chain, checkpoints, rpc, dev_settings):
        """Test repeated revert cycles with resnapshot."""
        checkpoints.snapshot()
        for _ in range(3):
            fund_accounts(rpc, dev_settings, [ALICE], 1, method="hardhat_setBalance")
            checkpoints.revert(resnapshot=True)
            assert rpc.get_balance(ALICE) == 0

    def test_stale_registry_is_detected_after_revert(
        self, chain, sender, artifact_store, checkpoints, output_dir, fixtures_dir: Path
    ):
        """Test that a registry outliving a revert is detected."""
        plan_path = fixtures_dir / "plans" / "errors_registry.json"
        checkpoints.snapshot()
        Orchestrator(sender, artifact_store, ArtifactRegistry.load(output_dir)).run(
            load_plan(plan_path)
        )
        checkpoints.revert()

        stale = Orchestrator(
            sender, artifact_store, ArtifactRegistry.load(output_dir), verify_existing=True
        )
        with pytest.raises(RegistryDivergenceError):
            stale.run(load_plan(plan_path))
