"""Network settings resolution for chain-deployments library."""

import os
from dataclasses import dataclass
from typing import Optional

from .constants import DEVELOPMENT_NETWORKS, NETWORK_CONFIG
from .exceptions import NetworkNotFoundError


@dataclass
class NetworkSettings:
    """Resolved configuration of one target network."""

    name: str
    chain_id: int
    rpc_url: str
    block_confirmations: int = 1
    development: bool = False  # Supports snapshot/revert and balance cheat codes
    explorer_api_url: Optional[str] = None
    key_env: Optional[str] = None

    @property
    def supports_checkpoints(self) -> bool:
        return self.development


def get_network_settings(network: str, rpc_url: Optional[str] = None) -> NetworkSettings:
    """
    Resolve settings for a network.

    The RPC URL is taken from the argument, then from the network's
    environment variable (e.g. $SEPOLIA_URL), then from the built-in default.

    Args:
        network: Network name (key of NETWORK_CONFIG)
        rpc_url: Explicit RPC endpoint

    Returns:
        NetworkSettings

    Raises:
        NetworkNotFoundError: If the network is not configured
        ValueError: If no RPC URL can be determined
    """
    if network not in NETWORK_CONFIG:
        raise NetworkNotFoundError(
            f"Network '{network}' is not configured; known networks: "
            f"{', '.join(sorted(NETWORK_CONFIG))}"
        )
    config = NETWORK_CONFIG[network]

    if rpc_url is None:
        rpc_url = os.environ.get(config["rpc_env"]) or config.get("rpc_url")
    if not rpc_url:
        raise ValueError(
            f"RPC URL required: set ${config['rpc_env']} environment variable, "
            "or pass rpc_url parameter"
        )

    return NetworkSettings(
        name=network,
        chain_id=config["chain_id"],
        rpc_url=rpc_url,
        block_confirmations=config.get("block_confirmations", 1),
        development=network in DEVELOPMENT_NETWORKS,
        explorer_api_url=config.get("explorer_api_url"),
        key_env=config.get("key_env"),
    )
