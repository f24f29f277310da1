from __future__ import annotations

from stable_balances.decimals import DEFAULT_DECIMALS_TABLE, DecimalsTable
from stable_balances.domain import TokenType


def test_bnb_chain_usdt_uses_eighteen_decimals():
    assert DEFAULT_DECIMALS_TABLE.lookup(56, TokenType.USDT) == 18


def test_bnb_chain_usdc_falls_back_to_default_row():
    assert DEFAULT_DECIMALS_TABLE.lookup(56, TokenType.USDC) == 6


def test_unknown_chain_uses_default_row():
    assert DEFAULT_DECIMALS_TABLE.lookup(8453, TokenType.USDC) == 6
    assert DEFAULT_DECIMALS_TABLE.lookup(999_999, TokenType.USDT) == 6


def test_empty_table_has_no_answer():
    table = DecimalsTable(overrides={}, defaults={})

    assert table.lookup(1, TokenType.USDT) is None
