"""Static decimals lookup used to skip the ``decimals()`` round-trip."""

from __future__ import annotations

from typing import Mapping

from .constants import DEFAULT_DECIMALS, KNOWN_DECIMALS
from .domain import TokenType


class DecimalsTable:
    """Known token decimals per chain, with a per-token default row."""

    def __init__(
        self,
        overrides: Mapping[int, Mapping[TokenType, int]] | None = None,
        defaults: Mapping[TokenType, int] | None = None,
    ):
        self._overrides = dict(KNOWN_DECIMALS if overrides is None else overrides)
        self._defaults = dict(DEFAULT_DECIMALS if defaults is None else defaults)

    def lookup(self, chain_id: int, token_type: TokenType) -> int | None:
        chain_row = self._overrides.get(chain_id)
        if chain_row and token_type in chain_row:
            return chain_row[token_type]
        return self._defaults.get(token_type)


DEFAULT_DECIMALS_TABLE = DecimalsTable()
