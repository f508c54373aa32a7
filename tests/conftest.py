"""Shared pytest fixtures for chain-deployments tests."""

import copy
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
import responses
from eth_abi import decode, encode
from eth_utils import keccak, to_checksum_address

from chain_deployments.artifacts import ArtifactStore
from chain_deployments.networks import NetworkSettings
from chain_deployments.orchestrator import Orchestrator
from chain_deployments.registry import ArtifactRegistry
from chain_deployments.rpc import JsonRpcClient
from chain_deployments.transactions import TransactionSender

FAKE_RPC_URL = "http://fake-node.example.com:8545"
DEPLOYER = to_checksum_address("0x" + "d0" * 20)
ALICE = to_checksum_address("0x" + "a1" * 20)

TRANSFER_TOPIC = "0x" + keccak(text="Transfer(address,address,uint256)").hex()
SELECTORS = {
    keccak(text=signature)[:4].hex(): signature
    for signature in (
        "mint(address,uint256)",
        "mint(address)",
        "decimals()",
        "balanceOf(address)",
    )
}


class JsonSigner:
    """Test signer: 'signs' by serialising the transaction as JSON."""

    def __init__(self, address: str = DEPLOYER):
        self.address = address
        self.signed: List[Dict[str, Any]] = []

    def sign_transaction(self, tx: Dict[str, Any]) -> bytes:
        self.signed.append(dict(tx))
        return json.dumps(tx).encode()


def _topic(value: bytes) -> str:
    return "0x" + value.rjust(32, b"\0").hex()


class FakeChain:
    """
    In-memory JSON-RPC node served through responses callbacks.

    Contract creations get sequential addresses; calls to mock token
    addresses implement just enough ERC-20 / ERC-721 behaviour for the mock
    asset flows. evm_snapshot / evm_revert follow hardhat semantics.
    """

    def __init__(self, rsps: responses.RequestsMock, url: str = FAKE_RPC_URL):
        self.url = url
        self.development = True
        self.state: Dict[str, Any] = {
            "block": 1,
            "code": {},
            "balances": {},
            "nonces": {},
            "receipts": {},
            "tokens": {},
            "nft_ids": {},
        }
        self.snapshots: Dict[int, Dict[str, Any]] = {}
        self.next_snapshot = 1
        self.calls: List[str] = []
        self.sent: List[Dict[str, Any]] = []
        self.revert_next = False
        self.drop_receipts = False
        rsps.add_callback(
            responses.POST, url, callback=self._handle, content_type="application/json"
        )

    # Helpers for assertions

    def method_calls(self, method: str) -> int:
        return self.calls.count(method)

    def deployments(self) -> List[Dict[str, Any]]:
        return [tx for tx in self.sent if "to" not in tx]

    def code_at(self, address: str) -> Optional[str]:
        return self.state["code"].get(address.lower())

    # JSON-RPC dispatch

    def _handle(self, request):
        body = json.loads(request.body)
        method, params = body["method"], body.get("params", [])
        self.calls.append(method)

        handler = getattr(self, "_" + method, None)
        if handler is None or (method.startswith("evm_") and not self.development):
            payload = {"jsonrpc": "2.0", "id": body["id"],
                       "error": {"code": -32601, "message": f"Method {method} not found"}}
        else:
            try:
                payload = {"jsonrpc": "2.0", "id": body["id"], "result": handler(*params)}
            except ValueError as e:
                payload = {"jsonrpc": "2.0", "id": body["id"],
                           "error": {"code": -32000, "message": str(e)}}
        return (200, {}, json.dumps(payload))

    def _eth_chainId(self):
        return hex(31337)

    def _eth_blockNumber(self):
        return hex(self.state["block"])

    def _eth_gasPrice(self):
        return hex(1_000_000_000)

    def _eth_estimateGas(self, tx):
        return hex(100_000)

    def _eth_getTransactionCount(self, address, block):
        return hex(self.state["nonces"].get(address.lower(), 0))

    def _eth_getCode(self, address, block):
        return self.state["code"].get(address.lower(), "0x")

    def _eth_getBalance(self, address, block):
        return hex(self.state["balances"].get(address.lower(), 0))

    def _eth_getTransactionReceipt(self, tx_hash):
        if self.drop_receipts:
            return None
        return self.state["receipts"].get(tx_hash)

    def _eth_sendRawTransaction(self, raw):
        tx = json.loads(bytes.fromhex(raw[2:]).decode())
        sender = DEPLOYER.lower()
        expected = self.state["nonces"].get(sender, 0)
        if tx["nonce"] != expected:
            raise ValueError(f"nonce mismatch: expected {expected}, got {tx['nonce']}")

        self.sent.append(tx)
        self.state["nonces"][sender] = expected + 1
        self.state["block"] += 1
        tx_hash = "0x" + keccak(raw.encode()).hex()

        receipt: Dict[str, Any] = {
            "transactionHash": tx_hash,
            "blockNumber": hex(self.state["block"]),
            "status": "0x1",
            "contractAddress": None,
            "logs": [],
        }
        if self.revert_next:
            self.revert_next = False
            receipt["status"] = "0x0"
        elif "to" not in tx:
            address = "0x" + f"{0xC0DE0000 + len(self.deployments()):040x}"
            self.state["code"][address] = tx["data"]
            receipt["contractAddress"] = address
        elif tx["data"] in ("", "0x"):
            # Plain value transfer
            to = tx["to"].lower()
            self.state["balances"][to] = self.state["balances"].get(to, 0) + tx["value"]
        else:
            receipt["logs"] = self._apply_call(tx["to"].lower(), tx["data"])

        self.state["receipts"][tx_hash] = receipt
        return tx_hash

    def _eth_call(self, tx, block):
        data = tx["data"]
        signature = SELECTORS.get(data[2:10])
        token = self.state["tokens"].get(tx["to"].lower(), {})
        if signature == "decimals()":
            return "0x" + encode(["uint8"], [18]).hex()
        if signature == "balanceOf(address)":
            (holder,) = decode(["address"], bytes.fromhex(data[10:]))
            return "0x" + encode(["uint256"], [token.get(holder.lower(), 0)]).hex()
        raise ValueError(f"execution reverted: unknown call {data[:10]}")

    def _apply_call(self, to, data):
        signature = SELECTORS.get(data[2:10])
        args = bytes.fromhex(data[10:])
        zero = _topic(b"")

        if signature == "mint(address,uint256)":
            recipient, amount = decode(["address", "uint256"], args)
            token = self.state["tokens"].setdefault(to, {})
            token[recipient.lower()] = token.get(recipient.lower(), 0) + amount
            return [{
                "address": to,
                "topics": [TRANSFER_TOPIC, zero, _topic(bytes.fromhex(recipient[2:]))],
                "data": "0x" + encode(["uint256"], [amount]).hex(),
            }]
        if signature == "mint(address)":
            (recipient,) = decode(["address"], args)
            token_id = self.state["nft_ids"].get(to, 0) + 1
            self.state["nft_ids"][to] = token_id
            return [{
                "address": to,
                "topics": [
                    TRANSFER_TOPIC,
                    zero,
                    _topic(bytes.fromhex(recipient[2:])),
                    _topic(token_id.to_bytes(32, "big")),
                ],
                "data": "0x",
            }]
        raise ValueError(f"execution reverted: unknown call {data[:10]}")

    def _evm_snapshot(self):
        snapshot_id = self.next_snapshot
        self.next_snapshot += 1
        self.snapshots[snapshot_id] = copy.deepcopy(self.state)
        return hex(snapshot_id)

    def _evm_revert(self, snapshot_id):
        snapshot_id = int(snapshot_id, 16)
        if snapshot_id not in self.snapshots:
            return False
        self.state = self.snapshots[snapshot_id]
        # Reverting consumes this snapshot and every later one
        self.snapshots = {k: v for k, v in self.snapshots.items() if k < snapshot_id}
        return True

    def _hardhat_setBalance(self, address, amount):
        self.state["balances"][address.lower()] = int(amount, 16)
        return True

    def _tenderly_setBalance(self, addresses, amount):
        for address in addresses:
            self.state["balances"][address.lower()] = int(amount, 16)
        return "0x" + "ab" * 32


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the path to the fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def artifacts_dir(fixtures_dir: Path) -> Path:
    return fixtures_dir / "artifacts"


@pytest.fixture
def artifact_store(artifacts_dir: Path) -> ArtifactStore:
    return ArtifactStore(artifacts_dir)


@pytest.fixture
def rpc_mock():
    """Activate responses for the duration of a test."""
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


@pytest.fixture
def chain(rpc_mock) -> FakeChain:
    return FakeChain(rpc_mock)


@pytest.fixture
def rpc() -> JsonRpcClient:
    return JsonRpcClient(FAKE_RPC_URL)


@pytest.fixture
def signer() -> JsonSigner:
    return JsonSigner()


@pytest.fixture
def sender(rpc: JsonRpcClient, signer: JsonSigner) -> TransactionSender:
    return TransactionSender(rpc, signer, chain_id=31337, timeout=0.05, poll_interval=0)


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    """Create a temporary registry directory for tests."""
    out = tmp_path / "out" / "hardhat"
    out.mkdir(parents=True, exist_ok=True)
    return out


@pytest.fixture
def registry(output_dir: Path) -> ArtifactRegistry:
    return ArtifactRegistry.load(output_dir)


@pytest.fixture
def orchestrator(chain, sender, artifact_store, registry) -> Orchestrator:
    return Orchestrator(sender, artifact_store, registry, network="hardhat")


@pytest.fixture
def dev_settings() -> NetworkSettings:
    return NetworkSettings(
        name="hardhat", chain_id=31337, rpc_url=FAKE_RPC_URL, development=True
    )


@pytest.fixture
def live_settings() -> NetworkSettings:
    return NetworkSettings(
        name="sepolia",
        chain_id=11155111,
        rpc_url=FAKE_RPC_URL,
        block_confirmations=6,
        explorer_api_url="https://api.etherscan.io/v2/api",
    )
