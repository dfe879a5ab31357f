"""Static network configuration and protocol constants."""

from typing import Optional, TypedDict


class NetworkEntry(TypedDict):
    label: str
    chain_id: int
    currency: str
    explorer_url: str
    rpc_url: str


AVAILABLE_NETWORKS: tuple[NetworkEntry, ...] = (
    {
        "label": "BSC Mainnet",
        "chain_id": 56,
        "currency": "BNB",
        "explorer_url": "https://bscscan.com",
        "rpc_url": "https://bsc-dataseed.binance.org/",
    },
    {
        "label": "Polygon Mainnet",
        "chain_id": 137,
        "currency": "POL",
        "explorer_url": "https://polygonscan.com",
        "rpc_url": "https://polygon-rpc.com",
    },
    {
        "label": "Ethereum Mainnet",
        "chain_id": 1,
        "currency": "ETH",
        "explorer_url": "https://etherscan.io",
        "rpc_url": "https://eth.drpc.org",
    },
    {
        "label": "Base Mainnet",
        "chain_id": 8453,
        "currency": "ETH",
        "explorer_url": "https://basescan.org",
        "rpc_url": "https://mainnet.base.org",
    },
    {
        "label": "Arbitrum One",
        "chain_id": 42161,
        "currency": "ETH",
        "explorer_url": "https://arbiscan.io",
        "rpc_url": "https://arb1.arbitrum.io/rpc",
    },
    {
        "label": "Optimism Mainnet",
        "chain_id": 10,
        "currency": "ETH",
        "explorer_url": "https://optimistic.etherscan.io",
        "rpc_url": "https://mainnet.optimism.io",
    },
)

# Deployed contracts per chain id. None means the protocol is not deployed
# there; deployments are supplied through settings overrides.
REVAMP_ADDRESSES: dict[int, Optional[str]] = {
    56: None,
    137: None,
    1: None,
    8453: None,
    42161: None,
    10: None,
}

SHAREHOLDING_ADDRESSES: dict[int, Optional[str]] = {
    56: None,
    137: None,
    1: None,
    8453: None,
    42161: None,
    10: None,
}

NATIVE_DECIMALS = 18
RATE_DECIMALS = 18

# Token metadata used when a token contract does not answer
PLACEHOLDER_NAME = "?"
PLACEHOLDER_SYMBOL = "?"
PLACEHOLDER_DECIMALS = 18

# Price history scan
BLOCKS_PER_DAY = 6_500
HISTORY_LOOKBACK_DAYS = 90
HISTORY_PAGE_SIZE = 5_000

# Users can earn at most this multiple of what they contributed
MAX_POTENTIAL_MULTIPLIER = 2

SHAREHOLDING_TOTAL_SHARES = 100

# Display precision (fractional digits)
RATE_DISPLAY_PLACES = 8
AMOUNT_DISPLAY_PLACES = 4

MAX_UINT256 = 2**256 - 1

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

DEFAULT_RECEIPT_TIMEOUT = 180  # seconds
