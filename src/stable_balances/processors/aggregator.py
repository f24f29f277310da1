from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, Mapping

from ..constants import TOKEN_METADATA
from ..domain import AggregateResult, AssetItem, TokenMetadata, TokenType
from ..units import format_usd, parse_usd

_UNPARSABLE = Decimal("-Infinity")


def aggregate(
    assets: Iterable[AssetItem],
    token_metadata: Mapping[TokenType, TokenMetadata] = TOKEN_METADATA,
    now: datetime | None = None,
) -> AggregateResult:
    """Rank assets by USD value and total them.

    Args:
        assets: Non-empty balances collected by the scheduler, in any order
        token_metadata: Metadata table attached to the result
        now: Generation time, defaults to the current UTC time

    Returns:
        AggregateResult with assets sorted by descending ``balance_usd``
        (stable for ties) and the USD total formatted to two decimals.

    Items whose ``balance_usd`` does not parse are kept but contribute
    nothing to the total and sort last.
    """
    items = list(assets)
    total = Decimal(0)
    for item in items:
        value = parse_usd(item.balance_usd)
        if value is not None:
            total += value

    ranked = sorted(
        items,
        key=lambda item: _sort_value(item.balance_usd),
        reverse=True,
    )
    generated_at = now or datetime.now(timezone.utc)

    return AggregateResult(
        assets=tuple(ranked),
        total_usd_value=format_usd(total),
        token_metadata=token_metadata,
        timestamp=_isoformat(generated_at),
    )


def _sort_value(balance_usd: str) -> Decimal:
    value = parse_usd(balance_usd)
    return _UNPARSABLE if value is None else value


def _isoformat(moment: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a ``Z`` suffix."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    utc = moment.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")
