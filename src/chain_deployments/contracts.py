"""Thin contract-call binding for chain-deployments library."""

from typing import Any, Dict, List, Optional

from eth_abi import decode, encode
from eth_utils import keccak, to_checksum_address

from .artifacts import canonical_type
from .exceptions import DeploymentError
from .rpc import JsonRpcClient
from .transactions import TransactionSender


def _signature(item: Dict[str, Any]) -> str:
    types = ",".join(canonical_type(i) for i in item.get("inputs", []))
    return f"{item['name']}({types})"


class ContractHandle:
    """Callable view of a deployed contract, built from its address and ABI."""

    def __init__(
        self,
        rpc: JsonRpcClient,
        address: str,
        abi: List[Dict[str, Any]],
        sender: Optional[TransactionSender] = None,
    ):
        self.rpc = rpc
        self.address = to_checksum_address(address)
        self.abi = abi
        self.sender = sender

    def _item(self, name: str, kind: str, arg_count: Optional[int] = None) -> Dict[str, Any]:
        for item in self.abi:
            if item.get("type") != kind or item.get("name") != name:
                continue
            if arg_count is None or len(item.get("inputs", [])) == arg_count:
                return item
        raise DeploymentError(f"{kind.capitalize()} '{name}' not found in contract ABI")

    def encode_call(self, fn: str, *args: Any) -> str:
        """Return 0x-prefixed call data: selector followed by encoded arguments."""
        item = self._item(fn, "function", len(args))
        selector = keccak(text=_signature(item))[:4]
        types = [canonical_type(i) for i in item.get("inputs", [])]
        return "0x" + (selector + encode(types, list(args))).hex()

    def call(self, fn: str, *args: Any) -> Any:
        """
        Execute a read-only call.

        Returns:
            The single decoded output, or a tuple when there are several
        """
        item = self._item(fn, "function", len(args))
        raw = self.rpc.call({"to": self.address, "data": self.encode_call(fn, *args)})
        output_types = [canonical_type(o) for o in item.get("outputs", [])]
        values = decode(output_types, bytes.fromhex(raw[2:]))
        return values[0] if len(values) == 1 else values

    def transact(self, fn: str, *args: Any, value: int = 0) -> Dict[str, Any]:
        """Send a state-changing call and return its confirmed receipt."""
        if self.sender is None:
            raise DeploymentError(f"Contract at {self.address} has no transaction sender")
        return self.sender.send(self.encode_call(fn, *args), to=self.address, value=value)

    def events(self, receipt: Dict[str, Any], name: str) -> List[Dict[str, Any]]:
        """
        Decode the logs of an event emitted by this contract.

        Returns:
            One dict per matching log, argument name -> value
        """
        item = self._item(name, "event")
        topic = "0x" + keccak(text=_signature(item)).hex()

        decoded = []
        for log in receipt.get("logs", []):
            topics = log.get("topics", [])
            if not topics or topics[0].lower() != topic:
                continue
            if to_checksum_address(log["address"]) != self.address:
                continue

            indexed = [i for i in item["inputs"] if i.get("indexed")]
            plain = [i for i in item["inputs"] if not i.get("indexed")]
            event: Dict[str, Any] = {}
            for param, raw in zip(indexed, topics[1:]):
                (event[param["name"]],) = decode([canonical_type(param)], bytes.fromhex(raw[2:]))
            if plain:
                values = decode([canonical_type(p) for p in plain], bytes.fromhex(log["data"][2:]))
                event.update({p["name"]: v for p, v in zip(plain, values)})
            decoded.append(event)
        return decoded
