"""Configuration constants for chain-deployments library."""

# Canonical ERC-6551 registry (v0.3.1), deployed at the same address on every chain
ERC6551_REGISTRY = "0x000000006551c19487814612e58FE06813775758"

# Networks that expose evm_snapshot / evm_revert and balance cheat codes
DEVELOPMENT_NETWORKS = ("hardhat", "localhost", "tenderly")

# Network configuration
# rpc_env / key_env name the environment variables consulted when no explicit
# RPC URL or signer is passed in
NETWORK_CONFIG = {
    "hardhat": {
        "chain_id": 31337,
        "rpc_url": "http://127.0.0.1:8545",
        "rpc_env": "HARDHAT_URL",
        "key_env": "HARDHAT_PRIVATEKEY",
        "block_confirmations": 1,
    },
    "localhost": {
        "chain_id": 31337,
        "rpc_url": "http://127.0.0.1:8545",
        "rpc_env": "LOCALHOST_URL",
        "key_env": "LOCALHOST_PRIVATEKEY",
        "block_confirmations": 1,
    },
    "tenderly": {
        "chain_id": 11155111,
        "rpc_env": "TENDERLY_URL",
        "key_env": "TENDERLY_PRIVATEKEY",
        "block_confirmations": 1,
    },
    "sepolia": {
        "chain_id": 11155111,
        "rpc_env": "SEPOLIA_URL",
        "key_env": "SEPOLIA_PRIVATEKEY",
        "block_confirmations": 6,
        "explorer_api_url": "https://api.etherscan.io/v2/api",
    },
    "mainnet": {
        "chain_id": 1,
        "rpc_env": "MAINNET_URL",
        "key_env": "MAINNET_PRIVATEKEY",
        "block_confirmations": 2,
        "explorer_api_url": "https://api.etherscan.io/v2/api",
    },
}

# Transaction defaults
GAS_LIMIT_MULTIPLIER = 1.2
CONFIRMATION_TIMEOUT = 300  # seconds
POLL_INTERVAL = 1.0  # seconds
RPC_TIMEOUT = 30  # seconds

# Verification defaults
VERIFICATION_WORKERS = 4
VERIFICATION_TIMEOUT = 120  # seconds
TENDERLY_API_URL = "https://api.tenderly.co/api/v1"
