"""Main API for chain-deployments library."""

import logging
import os
from pathlib import Path
from typing import Dict, List, Optional, Union

from .artifacts import ArtifactStore
from .checkpoints import CheckpointManager
from .exceptions import DeploymentError
from .networks import NetworkSettings, get_network_settings
from .orchestrator import Orchestrator
from .paths import get_checkpoint_path, get_network_output_dir
from .plan import DeploymentPlan, default_plan
from .registry import ArtifactRegistry
from .rpc import JsonRpcClient
from .signing import LocalSigner, Signer
from .transactions import TransactionSender
from .types import DeploymentReport, VerificationRecord
from .verification import EtherscanVerifier, TenderlyVerifier, VerificationService

logger = logging.getLogger(__name__)


def _resolve_signer(settings: NetworkSettings, signer: Optional[Signer]) -> Signer:
    if signer is not None:
        return signer

    private_key = os.environ.get(settings.key_env) if settings.key_env else None
    if not private_key:
        raise ValueError(
            f"Signer required: set ${settings.key_env} environment variable, "
            "or pass signer parameter"
        )
    return LocalSigner(private_key)


def default_verifier(settings: NetworkSettings):
    """
    Build the verifier configured for a network, if any.

    Tenderly forks use $TENDERLY_USERNAME, $TENDERLY_PROJECT_SLUG and
    $TENDERLY_ACCESS_KEY (the fork id is the last segment of the RPC URL);
    explorer-backed networks use $ETHERSCAN_API_KEY.

    Returns:
        A verifier, or None when the required credentials are missing
    """
    if settings.name == "tenderly":
        username = os.environ.get("TENDERLY_USERNAME")
        project = os.environ.get("TENDERLY_PROJECT_SLUG")
        access_key = os.environ.get("TENDERLY_ACCESS_KEY")
        if username and project and access_key:
            fork_id = settings.rpc_url.rstrip("/").split("/")[-1]
            return TenderlyVerifier(username, project, fork_id, access_key)
        return None

    api_key = os.environ.get("ETHERSCAN_API_KEY")
    if settings.explorer_api_url and api_key:
        return EtherscanVerifier(settings.explorer_api_url, api_key, settings.chain_id)
    return None


def deploy_network(
    network: str,
    plan: Optional[DeploymentPlan] = None,
    artifacts_dir: Union[Path, str] = "artifacts",
    output_root: Optional[Union[Path, str]] = None,
    rpc_url: Optional[str] = None,
    signer: Optional[Signer] = None,
    snapshot: bool = False,
    verify: bool = True,
    verifier=None,
    verification_workers: Optional[int] = None,
    poll_interval: Optional[float] = None,
) -> DeploymentReport:
    """
    Deploy a plan to a network, then verify what was deployed.

    Units already present in the network's registry are skipped, so an
    interrupted run resumes where it stopped when called again.

    Args:
        network: Network name ("hardhat", "sepolia", ...)
        plan: Deployment plan (defaults to default_plan())
        artifacts_dir: Hardhat artifacts directory
        output_root: Registry root (defaults to ./out); files go to {root}/{network}
        rpc_url: RPC URL (defaults to the network's environment variable)
        signer: Signing capability (defaults to the network's private key variable)
        snapshot: Take a checkpoint before deploying (development networks only)
        verify: Run the verification phase after deploying
        verifier: Verifier to use (defaults to default_verifier())
        verification_workers: Maximum concurrent verification calls
        poll_interval: Seconds between transaction receipt polls

    Returns:
        DeploymentReport with deployed units and verification records

    Raises:
        CheckpointUnsupportedError: If snapshot requested on a network without it,
            raised before any deployment
        DependencyOrderError: If the plan lists a unit before its dependencies
        TransactionFailedError: If a deployment transaction fails
        RegistryIOError: If the registry cannot be read or written
    """
    settings = get_network_settings(network, rpc_url)
    signer = _resolve_signer(settings, signer)
    output_dir = get_network_output_dir(network, output_root)
    plan = plan if plan is not None else default_plan()

    rpc = JsonRpcClient(settings.rpc_url)
    sender_options = {} if poll_interval is None else {"poll_interval": poll_interval}
    sender = TransactionSender(
        rpc,
        signer,
        chain_id=settings.chain_id,
        confirmations=settings.block_confirmations,
        **sender_options,
    )
    artifacts = ArtifactStore(artifacts_dir)
    registry = ArtifactRegistry.load(output_dir)

    logger.info("Network: %s (chain id %d), deployer %s", network, settings.chain_id, signer.address)

    if snapshot:
        checkpoints = CheckpointManager(rpc, settings, get_checkpoint_path(output_dir))
        checkpoints.snapshot()

    orchestrator = Orchestrator(sender, artifacts, registry, network=network)
    try:
        report = orchestrator.run(plan)
    except DeploymentError:
        logger.error(orchestrator.report.summary())
        raise

    if verify:
        chosen = verifier if verifier is not None else default_verifier(settings)
        if chosen is None:
            logger.warning("No verifier configured for network '%s', skipping verification", network)
        else:
            report.verification = _verify_registry(
                chosen, artifacts, registry, plan, verification_workers
            )

    logger.info(report.summary())
    return report


def verify_network(
    network: str,
    verifier=None,
    artifacts_dir: Union[Path, str] = "artifacts",
    output_root: Optional[Union[Path, str]] = None,
    rpc_url: Optional[str] = None,
    plan: Optional[DeploymentPlan] = None,
    verification_workers: Optional[int] = None,
) -> List[VerificationRecord]:
    """
    Verify every unit of an existing registry.

    Returns:
        One VerificationRecord per registry entry

    Raises:
        ValueError: If no verifier is given or configured for the network
    """
    settings = get_network_settings(network, rpc_url)
    verifier = verifier if verifier is not None else default_verifier(settings)
    if verifier is None:
        raise ValueError(f"No verifier configured for network '{network}'")

    registry = ArtifactRegistry.load(get_network_output_dir(network, output_root))
    return _verify_registry(
        verifier, ArtifactStore(artifacts_dir), registry, plan, verification_workers
    )


def revert_network(
    network: str,
    output_root: Optional[Union[Path, str]] = None,
    rpc_url: Optional[str] = None,
    token: Optional[str] = None,
    resnapshot: bool = False,
) -> Optional[str]:
    """
    Restore a development network to its persisted checkpoint.

    Must not run while a deployment against the same network is in flight.
    Contracts deployed after the checkpoint disappear from the chain but not
    from the registry; delete or reload the registry accordingly.

    Returns:
        The new checkpoint token if resnapshot, else None

    Raises:
        CheckpointUnsupportedError: If the network cannot revert
        CheckpointNotFoundError: If no checkpoint was persisted
        CheckpointError: If the node rejects the checkpoint
    """
    settings = get_network_settings(network, rpc_url)
    output_dir = get_network_output_dir(network, output_root)
    manager = CheckpointManager(
        JsonRpcClient(settings.rpc_url), settings, get_checkpoint_path(output_dir)
    )
    return manager.revert(token, resnapshot=resnapshot)


def _verify_registry(
    verifier,
    artifacts: ArtifactStore,
    registry: ArtifactRegistry,
    plan: Optional[DeploymentPlan],
    workers: Optional[int],
) -> List[VerificationRecord]:
    artifact_names: Dict[str, str] = {}
    if plan is not None:
        artifact_names = {u.name: u.artifact for u in plan if u.artifact}

    options = {} if workers is None else {"max_workers": workers}
    service = VerificationService(verifier, artifacts, **options)
    return service.verify_all(registry, artifact_names)
