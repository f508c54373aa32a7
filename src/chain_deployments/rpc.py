"""JSON-RPC client for chain-deployments library."""

import itertools
import logging
from typing import Any, Dict, List, Optional

import requests

from .constants import RPC_TIMEOUT
from .exceptions import RPCError

logger = logging.getLogger(__name__)

# JSON-RPC 2.0 "method not found"
METHOD_NOT_FOUND = -32601


class JsonRpcClient:
    """Minimal Ethereum JSON-RPC client over HTTP."""

    def __init__(
        self,
        url: str,
        timeout: float = RPC_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self.timeout = timeout
        self._session = session or requests.Session()
        self._ids = itertools.count(1)

    def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """
        Perform a JSON-RPC call.

        Args:
            method: RPC method name (e.g. "eth_getCode")
            params: Positional parameters

        Returns:
            The "result" member of the response

        Raises:
            RPCError: If the HTTP request fails, the status is not 200,
                or the response carries an error object
        """
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params or [],
            "id": next(self._ids),
        }
        logger.debug("RPC %s %s", method, payload["params"])

        try:
            response = self._session.post(self.url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise RPCError(f"Network error during RPC call {method}: {e}") from e

        # Check for HTTP errors
        if response.status_code != 200:
            raise RPCError(f"RPC request {method} failed with status {response.status_code}")

        try:
            result = response.json()
        except ValueError as e:
            raise RPCError(f"RPC response for {method} is not valid JSON") from e

        # Check for RPC errors
        if "error" in result:
            error = result["error"]
            if isinstance(error, dict):
                raise RPCError(
                    f"RPC error in {method}: {error.get('message', error)}",
                    code=error.get("code"),
                )
            raise RPCError(f"RPC error in {method}: {error}")

        return result.get("result")

    def chain_id(self) -> int:
        return int(self.request("eth_chainId"), 16)

    def block_number(self) -> int:
        return int(self.request("eth_blockNumber"), 16)

    def gas_price(self) -> int:
        return int(self.request("eth_gasPrice"), 16)

    def get_transaction_count(self, address: str, block: str = "pending") -> int:
        return int(self.request("eth_getTransactionCount", [address, block]), 16)

    def estimate_gas(self, tx: Dict[str, Any]) -> int:
        return int(self.request("eth_estimateGas", [tx]), 16)

    def send_raw_transaction(self, raw: bytes) -> str:
        return self.request("eth_sendRawTransaction", ["0x" + raw.hex()])

    def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        return self.request("eth_getTransactionReceipt", [tx_hash])

    def get_balance(self, address: str, block: str = "latest") -> int:
        return int(self.request("eth_getBalance", [address, block]), 16)

    def get_code(self, address: str, block: str = "latest") -> str:
        return self.request("eth_getCode", [address, block])

    def call(self, tx: Dict[str, Any], block: str = "latest") -> str:
        return self.request("eth_call", [tx, block])
