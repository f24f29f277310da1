from __future__ import annotations

import asyncio
from decimal import Decimal

from ..constants import FALLBACK_DECIMALS, RPC_TIMEOUT_SECONDS, TOKEN_METADATA
from ..decimals import DEFAULT_DECIMALS_TABLE, DecimalsTable
from ..domain import AssetItem, TokenConfig, TokenType
from ..logger import get_logger
from ..units import format_units, format_usd
from .erc20_reader import Erc20Reader

logger = get_logger(__name__)


class BalanceFetcher:
    """Fetch one stablecoin balance for a wallet on one chain.

    Every failure (missing endpoint, RPC error, timeout, malformed response)
    resolves to ``None``. Only cancellation propagates.
    """

    def __init__(
        self,
        reader: Erc20Reader,
        rpc_timeout: float = RPC_TIMEOUT_SECONDS,
        decimals_table: DecimalsTable = DEFAULT_DECIMALS_TABLE,
    ):
        self._reader = reader
        self._rpc_timeout = rpc_timeout
        self._decimals_table = decimals_table

    async def fetch(
        self,
        wallet_address: str,
        config: TokenConfig,
        token_type: TokenType,
    ) -> AssetItem | None:
        if not config.has_rpc:
            return None

        decimals = await self._resolve_decimals(config, token_type)

        try:
            raw_balance = await asyncio.wait_for(
                self._reader.balance_of(config, wallet_address),
                timeout=self._rpc_timeout,
            )
            balance = format_units(raw_balance, decimals)
        except asyncio.TimeoutError:
            logger.debug(
                "balanceOf timed out after %.1fs for %s on %s",
                self._rpc_timeout,
                token_type.value,
                config.chain.name,
            )
            return None
        except Exception as e:
            logger.debug(
                "balanceOf failed for %s on %s: %s",
                token_type.value,
                config.chain.name,
                e,
            )
            return None

        value = Decimal(balance)
        if value <= 0:
            return None

        metadata = TOKEN_METADATA[token_type]
        return AssetItem(
            chain=config.chain,
            symbol=metadata.symbol,
            token_type=token_type,
            balance=balance,
            balance_usd=format_usd(value),  # 1:1 USD peg
            token_address=config.token_address,
            token_image=metadata.image,
        )

    async def _resolve_decimals(self, config: TokenConfig, token_type: TokenType) -> int:
        known = self._decimals_table.lookup(config.chain.id, token_type)
        if known is not None:
            return known

        try:
            return await asyncio.wait_for(
                self._reader.decimals(config), timeout=self._rpc_timeout
            )
        except Exception as e:
            logger.debug(
                "decimals() unavailable for %s on %s (%s); assuming %d",
                token_type.value,
                config.chain.name,
                type(e).__name__,
                FALLBACK_DECIMALS,
            )
            return FALLBACK_DECIMALS
