"""Sequential transaction submission for chain-deployments library."""

import logging
import time
from typing import Any, Dict, Optional

from .constants import CONFIRMATION_TIMEOUT, GAS_LIMIT_MULTIPLIER, POLL_INTERVAL
from .exceptions import ConfirmationTimeoutError, RPCError, TransactionFailedError, TransactionRevertedError
from .rpc import JsonRpcClient
from .signing import Signer

logger = logging.getLogger(__name__)


class TransactionSender:
    """
    Signs, submits and confirms transactions one at a time.

    The nonce is read from the node once and then incremented locally so that
    consecutive transactions are observed in exact submission order. Every
    send blocks until the receipt has the requested number of confirmations.
    """

    def __init__(
        self,
        rpc: JsonRpcClient,
        signer: Signer,
        chain_id: Optional[int] = None,
        confirmations: int = 1,
        timeout: float = CONFIRMATION_TIMEOUT,
        poll_interval: float = POLL_INTERVAL,
    ):
        self.rpc = rpc
        self.signer = signer
        self.confirmations = max(1, confirmations)
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._chain_id = chain_id
        self._nonce: Optional[int] = None
        self.transaction_count = 0  # Transactions submitted through this sender

    @property
    def address(self) -> str:
        return self.signer.address

    @property
    def chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = self.rpc.chain_id()
        return self._chain_id

    def next_nonce(self) -> int:
        """Nonce of the next transaction; the pending count is read once."""
        if self._nonce is None:
            self._nonce = self.rpc.get_transaction_count(self.address, "pending")
        return self._nonce

    def send(self, data: str, to: Optional[str] = None, value: int = 0) -> Dict[str, Any]:
        """
        Submit a transaction and wait for its confirmation.

        Args:
            data: Hex call data (or deployment bytecode when `to` is None)
            to: Recipient address, None for contract creation
            value: Wei to transfer

        Returns:
            The transaction receipt

        Raises:
            TransactionFailedError: If gas estimation or submission is rejected
            TransactionRevertedError: If the mined receipt has status 0
            ConfirmationTimeoutError: If not confirmed before the timeout
        """
        call: Dict[str, Any] = {"from": self.address, "data": data, "value": hex(value)}
        if to is not None:
            call["to"] = to

        try:
            gas_estimate = self.rpc.estimate_gas(call)
            gas_price = self.rpc.gas_price()
        except RPCError as e:
            raise TransactionFailedError(f"Transaction rejected during gas estimation: {e}") from e

        tx: Dict[str, Any] = {
            "nonce": self.next_nonce(),
            "gasPrice": gas_price,
            "gas": int(gas_estimate * GAS_LIMIT_MULTIPLIER),
            "value": value,
            "data": data,
            "chainId": self.chain_id,
        }
        if to is not None:
            tx["to"] = to

        raw = self.signer.sign_transaction(tx)
        try:
            tx_hash = self.rpc.send_raw_transaction(raw)
        except RPCError as e:
            raise TransactionFailedError(f"Transaction submission rejected: {e}") from e

        # The nonce is consumed once the node accepted the transaction
        self._nonce = tx["nonce"] + 1
        self.transaction_count += 1
        logger.debug("Submitted %s (nonce %d)", tx_hash, tx["nonce"])

        return self.wait_for_receipt(tx_hash)

    def wait_for_receipt(self, tx_hash: str) -> Dict[str, Any]:
        """
        Poll until the transaction is mined and sufficiently confirmed.

        Raises:
            TransactionRevertedError: If the receipt status is 0
            ConfirmationTimeoutError: If the deadline passes first
        """
        deadline = time.monotonic() + self.timeout
        receipt: Optional[Dict[str, Any]] = None

        while True:
            if receipt is None:
                receipt = self.rpc.get_transaction_receipt(tx_hash)
                if receipt is not None and int(receipt.get("status", "0x1"), 16) == 0:
                    raise TransactionRevertedError(f"Transaction {tx_hash} reverted")

            if receipt is not None:
                if self.confirmations == 1:
                    return receipt
                mined_in = int(receipt["blockNumber"], 16)
                if self.rpc.block_number() - mined_in + 1 >= self.confirmations:
                    return receipt

            if time.monotonic() >= deadline:
                state = "unconfirmed" if receipt is not None else "not mined"
                raise ConfirmationTimeoutError(
                    f"Transaction {tx_hash} {state} after {self.timeout}s"
                )
            time.sleep(self.poll_interval)
