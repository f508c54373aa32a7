"""Transaction signing capability for chain-deployments library."""

from typing import Any, Dict, Protocol

from eth_account import Account


class Signer(Protocol):
    """
    Signing capability supplied by the caller.

    The library never generates or stores keys; it only asks a signer for its
    sender address and for signatures over transactions it built.
    """

    @property
    def address(self) -> str: ...

    def sign_transaction(self, tx: Dict[str, Any]) -> bytes: ...


class LocalSigner:
    """Signer backed by an in-memory eth_account key."""

    def __init__(self, private_key: str):
        self._account = Account.from_key(private_key)

    @property
    def address(self) -> str:
        return self._account.address

    def sign_transaction(self, tx: Dict[str, Any]) -> bytes:
        signed = self._account.sign_transaction(tx)
        return bytes(signed.raw_transaction)

    def __repr__(self) -> str:
        return f"LocalSigner({self.address})"
