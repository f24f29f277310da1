from __future__ import annotations

from .balance_fetcher import BalanceFetcher
from .erc20_reader import Erc20Reader, Web3Erc20Reader

__all__ = [
    "BalanceFetcher",
    "Erc20Reader",
    "Web3Erc20Reader",
]
