"""Balance query service: validation, cache policy and the fetch pipeline."""

from __future__ import annotations

import asyncio
import math
from typing import Mapping

from eth_typing import ChecksumAddress
from web3 import Web3

from .adapters.balance_fetcher import BalanceFetcher
from .adapters.erc20_reader import Erc20Reader, Web3Erc20Reader
from .cache import BalanceCache, InMemoryBalanceCache
from .constants import TOKEN_METADATA
from .domain import AggregateResult, BalanceResponse, TokenMetadata, TokenType
from .exceptions import InvalidAddressError, MissingAddressError
from .logger import get_logger
from .processors import aggregate
from .registry import TokenRegistry
from .scheduler import BatchScheduler
from .settings import BalanceSettings

logger = get_logger(__name__)


def normalize_address(address: str | None) -> ChecksumAddress:
    """Validate a wallet address and return its EIP-55 checksum form.

    Raises:
        MissingAddressError: If the address is missing or blank
        InvalidAddressError: If the address is not a well-formed EVM address
            (including mixed-case input with a bad checksum)
    """
    if address is None or not address.strip():
        raise MissingAddressError()
    candidate = address.strip()
    if not Web3.is_address(candidate):
        raise InvalidAddressError(candidate)
    return Web3.to_checksum_address(candidate)


def _round_seconds(seconds: float) -> int:
    """Round half up, so 14.5 seconds reports as 15."""
    return math.floor(seconds + 0.5)


class BalanceService:
    """Answers balance queries for wallet addresses.

    Owns its cache and reader. Concurrent refreshes for the same address are
    coalesced into a single pipeline run.
    """

    def __init__(
        self,
        registry: TokenRegistry,
        scheduler: BatchScheduler,
        cache: BalanceCache,
        reader: Erc20Reader | None = None,
        token_metadata: Mapping[TokenType, TokenMetadata] = TOKEN_METADATA,
    ):
        self.registry = registry
        self.scheduler = scheduler
        self.cache = cache
        self._reader = reader
        self._token_metadata = token_metadata
        self._inflight: dict[str, asyncio.Task[AggregateResult]] = {}

    @classmethod
    def from_settings(
        cls,
        settings: BalanceSettings,
        reader: Erc20Reader | None = None,
    ) -> BalanceService:
        """Wire the registry, fetcher, scheduler and cache from settings."""
        reader = reader or Web3Erc20Reader(request_timeout=settings.rpc_timeout)
        fetcher = BalanceFetcher(reader, rpc_timeout=settings.rpc_timeout)
        scheduler = BatchScheduler(
            fetcher,
            max_concurrent_requests=settings.max_concurrent_requests,
            batch_delay=settings.batch_delay,
            priority_chains=settings.priority_chains,
        )
        cache = InMemoryBalanceCache(
            ttl=settings.cache_duration, max_entries=settings.cache_max_entries
        )
        return cls(
            registry=TokenRegistry.from_settings(settings),
            scheduler=scheduler,
            cache=cache,
            reader=reader,
        )

    async def query(
        self, address: str | None, force_refresh: bool = False
    ) -> BalanceResponse:
        """Return aggregated balances for ``address``.

        Serves the cached result while it is fresh unless ``force_refresh``
        is set; otherwise runs the fetch pipeline and replaces the entry.

        Raises:
            MissingAddressError: If no address was given
            InvalidAddressError: If the address is malformed
        """
        wallet = normalize_address(address)

        entry = self.cache.get(wallet)
        if entry is not None and not force_refresh:
            age = self.cache.age(entry)
            if age < self.cache.ttl:
                logger.debug("Serving cached balances for %s (age %.1fs)", wallet, age)
                return BalanceResponse(
                    result=entry.result,
                    cached=True,
                    cache_age=_round_seconds(age),
                    next_refresh_in=_round_seconds(self.cache.ttl - age),
                )

        result = await self._refresh(wallet)
        return BalanceResponse(
            result=result,
            cached=False,
            next_refresh_in=_round_seconds(self.cache.ttl),
        )

    async def _refresh(self, wallet: str) -> AggregateResult:
        task = self._inflight.get(wallet)
        if task is None:
            task = asyncio.create_task(self._run_pipeline(wallet))
            self._inflight[wallet] = task
            task.add_done_callback(lambda done: self._forget(wallet, done))
        else:
            logger.debug("Joining in-flight balance refresh for %s", wallet)
        # shield: one caller going away must not cancel the refresh for others
        return await asyncio.shield(task)

    def _forget(self, wallet: str, task: asyncio.Task[AggregateResult]) -> None:
        if self._inflight.get(wallet) is task:
            del self._inflight[wallet]
        # marks the error retrieved even when every caller was cancelled
        if not task.cancelled() and task.exception() is not None:
            logger.warning(
                "Balance refresh for %s failed: %r", wallet, task.exception()
            )

    async def _run_pipeline(self, wallet: str) -> AggregateResult:
        tasks = self.registry.fetch_tasks()
        logger.info("Fetching balances for %s across %d token deployments", wallet, len(tasks))

        assets = await self.scheduler.run(wallet, tasks)
        result = aggregate(assets, self._token_metadata)
        self.cache.put(wallet, result)

        logger.info(
            "Found %d balances for %s, total $%s",
            len(result.assets),
            wallet,
            result.total_usd_value,
        )
        return result

    async def close(self) -> None:
        """Release reader connections."""
        if self._reader is not None:
            await self._reader.close()
