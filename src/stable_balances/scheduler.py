"""Rate-limit-aware execution of balance fetch tasks.

Tasks are grouped by RPC provider hostname. Groups run one after another,
each group is cut into fixed-size batches that also run one after another,
and the tasks inside a batch run concurrently.
"""

from __future__ import annotations

import asyncio
from typing import Iterable, Sequence
from urllib.parse import urlsplit

from .adapters.balance_fetcher import BalanceFetcher
from .constants import BATCH_DELAY_SECONDS, MAX_CONCURRENT_REQUESTS, PRIORITY_CHAINS
from .domain import AssetItem, FetchTask, TokenType
from .logger import get_logger

logger = get_logger(__name__)


def provider_domain(rpc_url: str) -> str:
    """Return the hostname of an RPC URL, or the raw string if it does not parse."""
    try:
        hostname = urlsplit(rpc_url).hostname
    except ValueError:
        return rpc_url
    return hostname or rpc_url


def prioritize_tasks(
    tasks: Sequence[FetchTask], priority_chains: Iterable[int] = PRIORITY_CHAINS
) -> list[FetchTask]:
    """Order tasks so the most commonly used chains are fetched first.

    Tasks of one token type stay together (token types in first-seen order).
    Within a token type, prioritized chains follow the priority list and all
    other chains come after them in their original relative order.
    """
    rank = {chain_id: index for index, chain_id in enumerate(dict.fromkeys(priority_chains))}
    unlisted = len(rank)
    token_order: dict[TokenType, int] = {}
    for task in tasks:
        token_order.setdefault(task.token_type, len(token_order))

    return sorted(
        tasks,
        key=lambda task: (
            token_order[task.token_type],
            rank.get(task.config.chain.id, unlisted),
        ),
    )


def group_by_provider(tasks: Iterable[FetchTask]) -> dict[str, list[FetchTask]]:
    """Group tasks by provider domain, preserving first-seen group order.

    Tasks without an RPC endpoint are left out.
    """
    groups: dict[str, list[FetchTask]] = {}
    for task in tasks:
        if not task.config.has_rpc:
            continue
        groups.setdefault(provider_domain(task.config.rpc_url), []).append(task)
    return groups


def chunked(tasks: Sequence[FetchTask], size: int) -> list[list[FetchTask]]:
    if size <= 0:
        raise ValueError(f"batch size must be positive, got {size}")
    return [list(tasks[i : i + size]) for i in range(0, len(tasks), size)]


class BatchScheduler:
    """Drive a :class:`BalanceFetcher` over many tasks without tripping provider rate limits."""

    def __init__(
        self,
        fetcher: BalanceFetcher,
        max_concurrent_requests: int = MAX_CONCURRENT_REQUESTS,
        batch_delay: float = BATCH_DELAY_SECONDS,
        priority_chains: Iterable[int] = PRIORITY_CHAINS,
    ):
        if max_concurrent_requests <= 0:
            raise ValueError("max_concurrent_requests must be positive")
        self._fetcher = fetcher
        self._max_concurrent_requests = max_concurrent_requests
        self._batch_delay = batch_delay
        self._priority_chains = tuple(priority_chains)

    async def run(self, wallet_address: str, tasks: Sequence[FetchTask]) -> list[AssetItem]:
        """Fetch every task and return the non-empty results.

        Results are in group, batch, task order; callers sort afterwards.
        """
        ordered = prioritize_tasks(tasks, self._priority_chains)
        groups = group_by_provider(ordered)
        logger.debug(
            "Fetching %d tasks across %d provider groups for %s",
            sum(len(group) for group in groups.values()),
            len(groups),
            wallet_address,
        )

        assets: list[AssetItem] = []
        for domain, group in groups.items():
            assets.extend(await self._run_group(wallet_address, domain, group))
        return assets

    async def _run_group(
        self, wallet_address: str, domain: str, group: list[FetchTask]
    ) -> list[AssetItem]:
        batches = chunked(group, self._max_concurrent_requests)
        results: list[AssetItem] = []
        for index, batch in enumerate(batches):
            batch_results = await asyncio.gather(
                *[
                    self._fetcher.fetch(wallet_address, task.config, task.token_type)
                    for task in batch
                ]
            )
            found = [item for item in batch_results if item is not None]
            results.extend(found)
            logger.debug(
                "Provider %s batch %d/%d: %d tasks, %d balances",
                domain,
                index + 1,
                len(batches),
                len(batch),
                len(found),
            )

            if index < len(batches) - 1 and self._batch_delay > 0:
                await asyncio.sleep(self._batch_delay)
        return results
