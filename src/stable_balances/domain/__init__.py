"""Domain models for stablecoin balance aggregation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, NewType

ChainId = NewType("ChainId", int)


class TokenType(str, Enum):
    USDT = "USDT"
    USDC = "USDC"


@dataclass(frozen=True)
class TokenMetadata:
    """Display metadata shared by every chain deployment of a token."""

    symbol: str
    name: str
    image: str
    color: str

    def to_dict(self) -> dict[str, str]:
        return {
            "symbol": self.symbol,
            "name": self.name,
            "image": self.image,
            "color": self.color,
        }


@dataclass(frozen=True)
class ChainInfo:
    """Represents a supported EVM chain."""

    id: int
    name: str
    color: str
    icon: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "name": self.name, "color": self.color}
        if self.icon is not None:
            data["icon"] = self.icon
        return data


@dataclass(frozen=True)
class TokenConfig:
    """A token deployment on one chain, with the RPC endpoint used to read it."""

    chain: ChainInfo
    token_address: str
    rpc_url: str = ""

    @property
    def has_rpc(self) -> bool:
        return bool(self.rpc_url)


@dataclass(frozen=True)
class FetchTask:
    config: TokenConfig
    token_type: TokenType


@dataclass(frozen=True)
class AssetItem:
    """A strictly positive stablecoin balance on one chain."""

    chain: ChainInfo
    symbol: str
    token_type: TokenType
    balance: str
    balance_usd: str
    token_address: str
    token_image: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "chain": self.chain.to_dict(),
            "symbol": self.symbol,
            "tokenType": self.token_type.value,
            "balance": self.balance,
            "balanceUSD": self.balance_usd,
            "tokenAddress": self.token_address,
            "tokenImage": self.token_image,
        }


@dataclass(frozen=True)
class AggregateResult:
    """Ranked asset list with its USD total."""

    assets: tuple[AssetItem, ...]
    total_usd_value: str
    token_metadata: Mapping[TokenType, TokenMetadata]
    timestamp: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "assets": [asset.to_dict() for asset in self.assets],
            "totalUsdValue": self.total_usd_value,
            "tokenMetadata": {
                token_type.value: metadata.to_dict()
                for token_type, metadata in self.token_metadata.items()
            },
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class CacheEntry:
    result: AggregateResult
    stored_at: float  # monotonic seconds


@dataclass(frozen=True)
class BalanceResponse:
    """Result of a balance query, annotated with cache bookkeeping."""

    result: AggregateResult
    cached: bool
    next_refresh_in: int
    cache_age: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": True, **self.result.to_dict()}
        data["cached"] = self.cached
        if self.cache_age is not None:
            data["cacheAge"] = self.cache_age
        data["nextRefreshIn"] = self.next_refresh_in
        return data
