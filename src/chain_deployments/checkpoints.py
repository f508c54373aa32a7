"""Network state snapshots for repeatable deployment runs."""

import logging
from pathlib import Path
from typing import Optional, Union

from .exceptions import CheckpointError, CheckpointNotFoundError, CheckpointUnsupportedError, RPCError
from .networks import NetworkSettings
from .rpc import METHOD_NOT_FOUND, JsonRpcClient
from .storage import load_json, save_json

logger = logging.getLogger(__name__)


def load_checkpoint(checkpoint_path: Union[Path, str]) -> str:
    """
    Load a persisted checkpoint token.

    Args:
        checkpoint_path: Path to checkpoint.json

    Returns:
        Checkpoint token string

    Raises:
        CheckpointNotFoundError: If no checkpoint was persisted
    """
    data = load_json(Path(checkpoint_path))
    if not isinstance(data, dict) or not data.get("checkpoint"):
        raise CheckpointNotFoundError(f"No checkpoint found at {checkpoint_path}")
    return data["checkpoint"]


def save_checkpoint(token: str, checkpoint_path: Union[Path, str]) -> None:
    """Persist a snapshot token as {"checkpoint": token}."""
    save_json({"checkpoint": token}, Path(checkpoint_path))


class CheckpointManager:
    """
    Captures and restores network state snapshots.

    Only development and fork networks support this. Snapshots must never be
    taken or restored while a deployment run is in flight against the same
    network: a revert would erase contracts the registry still records.
    """

    def __init__(
        self,
        rpc: JsonRpcClient,
        settings: NetworkSettings,
        checkpoint_path: Union[Path, str],
    ):
        self.rpc = rpc
        self.settings = settings
        self.checkpoint_path = Path(checkpoint_path)

    def ensure_supported(self) -> None:
        """
        Raises:
            CheckpointUnsupportedError: If the network cannot snapshot/revert
        """
        if not self.settings.supports_checkpoints:
            raise CheckpointUnsupportedError(
                f"Network '{self.settings.name}' does not support snapshot/revert; "
                "only development and fork networks do"
            )

    def snapshot(self) -> str:
        """
        Snapshot the network state and persist the token.

        Returns:
            Checkpoint token

        Raises:
            CheckpointUnsupportedError: If the network cannot snapshot
        """
        self.ensure_supported()
        token = self._request("evm_snapshot")
        if not token:
            raise CheckpointError("Network returned an empty snapshot id")

        save_checkpoint(token, self.checkpoint_path)
        logger.info("Created checkpoint: %s", token)
        return token

    def revert(self, token: Optional[str] = None, resnapshot: bool = False) -> Optional[str]:
        """
        Restore the network to a snapshot.

        Everything after the snapshot (deployments, balances, mints) is
        discarded. Most nodes also invalidate the snapshot itself, so pass
        `resnapshot=True` to take and persist a fresh one right away.

        Args:
            token: Checkpoint token (defaults to the persisted one)
            resnapshot: Take a new snapshot after reverting

        Returns:
            The new checkpoint token if resnapshot, else None

        Raises:
            CheckpointUnsupportedError: If the network cannot revert
            CheckpointNotFoundError: If no token is given or persisted
            CheckpointError: If the network rejects the token
        """
        self.ensure_supported()
        if token is None:
            token = load_checkpoint(self.checkpoint_path)

        reverted = self._request("evm_revert", [token])
        if reverted is False:
            raise CheckpointError(
                f"Network refused to revert to checkpoint {token}; "
                "it is unknown or was already consumed"
            )
        logger.info("Reverted to checkpoint: %s", token)

        if resnapshot:
            return self.snapshot()
        return None

    def _request(self, method: str, params: Optional[list] = None):
        try:
            return self.rpc.request(method, params)
        except RPCError as e:
            if e.code == METHOD_NOT_FOUND:
                raise CheckpointUnsupportedError(
                    f"Network '{self.settings.name}' does not implement {method}"
                ) from e
            raise
