"""Mock ERC-20 / ERC-721 assets for development and test networks."""

import logging
from pathlib import Path
from typing import Dict, Union

from .artifacts import ArtifactStore
from .contracts import ContractHandle
from .exceptions import DeploymentError
from .orchestrator import Orchestrator, deploy_units
from .registry import ArtifactRegistry
from .rpc import JsonRpcClient
from .storage import load_json, save_json
from .transactions import TransactionSender
from .types import DeploymentUnit, UnitKind

logger = logging.getLogger(__name__)

MOCK_TOKEN_ARTIFACT = "MockERC20"
MOCK_NFT_ARTIFACT = "MockERC721"


class MockAssets:
    """Handles to the deployed MockToken (ERC-20) and MockNFT (ERC-721)."""

    def __init__(self, token: ContractHandle, nft: ContractHandle):
        self.token = token
        self.nft = nft

    @property
    def addr(self) -> Dict[str, str]:
        return {"MockToken": self.token.address, "MockNFT": self.nft.address}

    @classmethod
    def deploy(
        cls, orchestrator: Orchestrator, tokens_path: Union[Path, str]
    ) -> "MockAssets":
        """
        Deploy both mock assets and persist their addresses.

        Uses the orchestrator primitives against a separate registry kept
        next to tokens.json, so mocks never appear in the protocol registry
        or its verification, and are skipped if already present.

        Args:
            orchestrator: Orchestrator bound to the target network (its sender
                and artifacts are reused)
            tokens_path: Where to write {"MockToken": ..., "MockNFT": ...}
        """
        tokens_path = Path(tokens_path)
        mocks = Orchestrator(
            orchestrator.sender,
            orchestrator.artifacts,
            ArtifactRegistry.load(tokens_path.parent),
            network=orchestrator.network,
        )
        token_address, nft_address = deploy_units(
            mocks,
            [
                DeploymentUnit(name="MockToken", kind=UnitKind.CONTRACT, artifact=MOCK_TOKEN_ARTIFACT),
                DeploymentUnit(name="MockNFT", kind=UnitKind.CONTRACT, artifact=MOCK_NFT_ARTIFACT),
            ],
        )
        save_json({"MockToken": token_address, "MockNFT": nft_address}, tokens_path)
        logger.info("Mock assets: MockToken=%s MockNFT=%s", token_address, nft_address)

        return cls.load(tokens_path, orchestrator.sender.rpc, orchestrator.sender, orchestrator.artifacts)

    @classmethod
    def load(
        cls,
        tokens_path: Union[Path, str],
        rpc: JsonRpcClient,
        sender: TransactionSender,
        artifacts: ArtifactStore,
    ) -> "MockAssets":
        """
        Raises:
            DeploymentError: If no mock asset addresses were persisted
        """
        data = load_json(Path(tokens_path))
        if not data:
            raise DeploymentError(f"No mock asset addresses at {tokens_path}")

        token = ContractHandle(rpc, data["MockToken"], artifacts.load(MOCK_TOKEN_ARTIFACT).abi, sender)
        nft = ContractHandle(rpc, data["MockNFT"], artifacts.load(MOCK_NFT_ARTIFACT).abi, sender)
        return cls(token, nft)

    def mint20(self, recipient: str, amount: int) -> int:
        """
        Mint whole tokens to a recipient.

        Args:
            recipient: Receiving address
            amount: Whole-token amount, scaled by the token decimals

        Returns:
            Recipient balance after minting, in base units
        """
        decimals = self.token.call("decimals")
        self.token.transact("mint", recipient, amount * 10**decimals)
        return self.token.call("balanceOf", recipient)

    def mint721(self, recipient: str) -> int:
        """
        Mint one NFT to a recipient.

        Returns:
            The new token id, read from the Transfer event

        Raises:
            DeploymentError: If the receipt has no Transfer event
        """
        receipt = self.nft.transact("mint", recipient)
        transfers = self.nft.events(receipt, "Transfer")
        if not transfers:
            raise DeploymentError("tokenId not found in receipt")
        return transfers[0]["tokenId"]
