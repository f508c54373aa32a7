"""Account funding on development and fork networks."""

import logging
from typing import Dict, List

from .exceptions import FundingUnsupportedError, RPCError
from .networks import NetworkSettings
from .rpc import METHOD_NOT_FOUND, JsonRpcClient

logger = logging.getLogger(__name__)


def fund_accounts(
    rpc: JsonRpcClient,
    settings: NetworkSettings,
    wallets: List[str],
    amount_wei: int,
    method: str = "tenderly_setBalance",
) -> Dict[str, int]:
    """
    Set the balance of every wallet to the same amount.

    Args:
        rpc: Client for the target network
        settings: Target network settings
        wallets: Addresses to fund
        amount_wei: Balance to set, in wei
        method: Cheat-code RPC method ("tenderly_setBalance" takes all
            wallets at once, "hardhat_setBalance" one wallet per call)

    Returns:
        Wallet -> balance read back with eth_getBalance

    Raises:
        FundingUnsupportedError: If the network has no balance cheat codes
    """
    if not settings.development:
        raise FundingUnsupportedError(
            f"Network '{settings.name}' does not support setting balances"
        )

    try:
        if method == "tenderly_setBalance":
            rpc.request(method, [wallets, hex(amount_wei)])
        else:
            for wallet in wallets:
                rpc.request(method, [wallet, hex(amount_wei)])
    except RPCError as e:
        if e.code == METHOD_NOT_FOUND:
            raise FundingUnsupportedError(
                f"Network '{settings.name}' does not implement {method}"
            ) from e
        raise

    balances = {}
    for wallet in wallets:
        balances[wallet] = rpc.get_balance(wallet)
        logger.info("Balance of %s is %d wei", wallet, balances[wallet])
    return balances
