"""Configuration constants for poker-deployments library."""

# Network defaults. chain_id values are fallbacks used only when the
# corresponding <PREFIX>_CHAINID variable is unset; the live chain id is
# always checked against the resolved value before deploying.
NETWORK_CONFIG = {
    "local": {
        "chain_id": 31337,
        "chain_name": "Hardhat Network",
        "env_prefix": "LOCAL",
        "default_rpc_url": "http://127.0.0.1:8545",
        "block_explorer_url": None,
        "explorer_api_url": None,
    },
    "testnet": {
        "chain_id": 97,
        "chain_name": "BNB Smart Chain Testnet",
        "env_prefix": "TESTNET",
        "default_rpc_url": None,
        "block_explorer_url": "https://testnet.bscscan.com",
        "explorer_api_url": "https://api-testnet.bscscan.com/api",
    },
    "mainnet": {
        "chain_id": 56,
        "chain_name": "BNB Smart Chain",
        "env_prefix": "MAINNET",
        "default_rpc_url": None,
        "block_explorer_url": "https://bscscan.com",
        "explorer_api_url": "https://api.bscscan.com/api",
    },
}

# Identifiers accepted as aliases for the local simulation network
NETWORK_ALIASES = {
    "hardhat": "local",
    "localhost": "local",
}

DEFAULT_DERIVATION_PATH = "m/44'/60'/0'/0/0"
DEFAULT_CONFIRMATION_TIMEOUT = 300.0

# Compiler settings the artifacts were built with; sent to the explorer
# alongside the flattened source.
COMPILER = {
    "version": "v0.8.6+commit.11564f7e",
    "optimizer_enabled": True,
    "optimizer_runs": 200,
    "license_type": 3,  # MIT
}

# Default contract suite, in registration order.
# Each entry: logical name -> constructor dependencies (logical names).
POKER_SUITE = {
    "PokerToken": [],
    "Poker": [],
    "CardSolt": ["Poker", "PokerToken"],
    "CardStore": ["Poker", "PokerToken"],
    "CardMine": ["Poker", "PokerToken"],
    "CardMarket": ["Poker"],
}
