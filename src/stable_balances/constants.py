"""Chain, token contract and fetch tuning constants."""

from types import MappingProxyType
from typing import Mapping

from .domain import ChainInfo, TokenMetadata, TokenType

CHAINS: Mapping[int, ChainInfo] = MappingProxyType(
    {
        1: ChainInfo(1, "Ethereum", "blue", "/chains/ethereum.png"),
        56: ChainInfo(56, "BNB Chain", "yellow", "/chains/bnb.png"),
        42161: ChainInfo(42161, "Arbitrum One", "blue", "/chains/arbitrum.png"),
        10: ChainInfo(10, "Optimism", "red", "/chains/optimism.png"),
        137: ChainInfo(137, "Polygon", "purple", "/chains/polygon.png"),
        43114: ChainInfo(43114, "Avalanche", "red", "/chains/avalanche.png"),
        59144: ChainInfo(59144, "Linea", "green", "/chains/linea.png"),
        1030: ChainInfo(1030, "Conflux eSpace", "orange", "/chains/conflux.png"),
        8453: ChainInfo(8453, "Base", "blue", "/chains/base.png"),
        80094: ChainInfo(80094, "Berachain", "yellow", "/chains/berachain.png"),
        4337: ChainInfo(4337, "Sonic", "blue", "/chains/sonic.png"),
    }
)

TOKEN_METADATA: Mapping[TokenType, TokenMetadata] = MappingProxyType(
    {
        TokenType.USDT: TokenMetadata(
            symbol="USDT",
            name="Tether USD",
            image="/tokens/usdt.png",
            color="green-400",
        ),
        TokenType.USDC: TokenMetadata(
            symbol="USDC",
            name="USD Coin",
            image="/tokens/usdc.png",
            color="blue-400",
        ),
    }
)

# chain id -> token contract, in table order
USDT_ADDRESSES: dict[int, str] = {
    1: "0xdAC17F958D2ee523a2206206994597C13D831ec7",
    56: "0x55d398326f99059fF775485246999027B3197955",
    42161: "0xFd086bC7CD5C481DCC9C85ebE478A1C0b69FCbb9",
    10: "0x94b008aA00579c1307B0EF2c499aD98a8ce58e58",
    137: "0xc2132D05D31c914a87C6611C10748AEb04B58e8F",
    43114: "0x9702230A8Ea53601f5cD2dc00fDBc13d4dF4A8c7",
    59144: "0xA219439258ca9da29E9Cc4cE5596924745e12B93",
    1030: "0xfe97E85d13ABD9c1c33384E796F10B73905637cE",
}

USDC_ADDRESSES: dict[int, str] = {
    1: "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
    56: "0x8AC76a51cc950d9822D68b83fE1Ad97B32Cd580d",
    42161: "0xaf88d065e77c8cC2239327C5EDb3A432268e5831",
    10: "0x0b2C639c533813f4Aa9D7837CAf62653d097Ff85",
    137: "0x3c499c542cEF5E3811e1192ce70d8cC03d5c3359",
    43114: "0xB97EF9Ef8734C71904D8002F8b6Bc66Dd9c48a6E",
    59144: "0x176211869cA2b568f2A7D4EE941E073a821EE1ff",
    8453: "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
    80094: "0x549943e04f40284185054145c6E4e9568C1D3241",
    4337: "0x29219dd400f2Bf60E5a23d13Be72B486D4038894",
}

TOKEN_ADDRESSES: Mapping[TokenType, dict[int, str]] = MappingProxyType(
    {
        TokenType.USDT: USDT_ADDRESSES,
        TokenType.USDC: USDC_ADDRESSES,
    }
)

# Most commonly used chains first
PRIORITY_CHAINS: tuple[int, ...] = (
    # Tier 1
    56,
    1,
    8453,
    137,
    42161,
    # Tier 2
    10,
    43114,
    80094,
    # Tier 3
    59144,
    4337,
    1030,
)

# chain id -> token type -> decimals
KNOWN_DECIMALS: dict[int, dict[TokenType, int]] = {
    56: {TokenType.USDT: 18},  # BNB Chain USDT is 18 decimals
    1: {TokenType.USDT: 6, TokenType.USDC: 6},
}
DEFAULT_DECIMALS: dict[TokenType, int] = {
    TokenType.USDT: 6,
    TokenType.USDC: 6,
}
FALLBACK_DECIMALS = 6

MAX_CONCURRENT_REQUESTS = 20
BATCH_DELAY_SECONDS = 0.3
RPC_TIMEOUT_SECONDS = 6.0
CACHE_DURATION_SECONDS = 30.0
CACHE_MAX_ENTRIES = 10_000

RPC_URL_ENV_PREFIX = "RPC_URL_"
