"""Chain/token registry built once from static tables and configured RPC endpoints."""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from .constants import CHAINS, TOKEN_ADDRESSES
from .domain import ChainId, FetchTask, TokenConfig, TokenType
from .logger import get_logger
from .settings import BalanceSettings

logger = get_logger(__name__)


class TokenRegistry:
    """Immutable mapping of (token type, chain id) to token deployments."""

    def __init__(self, tokens: Mapping[TokenType, Mapping[int, TokenConfig]]):
        self._tokens: Mapping[TokenType, Mapping[int, TokenConfig]] = MappingProxyType(
            {
                token_type: MappingProxyType(dict(configs))
                for token_type, configs in tokens.items()
            }
        )

    @classmethod
    def from_settings(
        cls,
        settings: BalanceSettings,
        token_addresses: Mapping[TokenType, Mapping[int, str]] = TOKEN_ADDRESSES,
    ) -> TokenRegistry:
        """Build the registry, attaching each chain's endpoint from settings.

        Chains without an endpoint keep their entries with an empty
        ``rpc_url``; they are skipped at fetch time.
        """
        missing: set[int] = set()
        tokens: dict[TokenType, dict[int, TokenConfig]] = {}
        for token_type, addresses in token_addresses.items():
            configs: dict[int, TokenConfig] = {}
            for chain_id, token_address in addresses.items():
                chain = CHAINS.get(chain_id)
                if chain is None:
                    raise ValueError(
                        f"No chain info for chain id {chain_id} ({token_type.value})"
                    )
                rpc_url = settings.rpc_url_for(chain_id)
                if not rpc_url:
                    missing.add(chain_id)
                configs[chain_id] = TokenConfig(
                    chain=chain, token_address=token_address, rpc_url=rpc_url
                )
            tokens[token_type] = configs

        for chain_id in sorted(missing):
            logger.warning(
                "No RPC URL configured for chain %d (RPC_URL_%d); its balances will be skipped",
                chain_id,
                chain_id,
            )
        registry = cls(tokens)
        logger.debug(
            "Token registry ready: %d deployments, %d chains with RPC",
            len(registry.all_configs()),
            len(registry.configured_chains()),
        )
        return registry

    def lookup(self, token_type: TokenType, chain_id: ChainId | int) -> TokenConfig | None:
        return self._tokens.get(token_type, {}).get(chain_id)

    def tokens(self, token_type: TokenType) -> Mapping[int, TokenConfig]:
        return self._tokens.get(token_type, MappingProxyType({}))

    @property
    def token_types(self) -> list[TokenType]:
        return list(self._tokens.keys())

    def all_configs(self) -> list[TokenConfig]:
        return [config for configs in self._tokens.values() for config in configs.values()]

    def configured_chains(self) -> set[int]:
        """Chain ids that have at least one deployment with an RPC endpoint."""
        return {config.chain.id for config in self.all_configs() if config.has_rpc}

    def fetch_tasks(self) -> list[FetchTask]:
        """One fetch task per deployment, token types in registry order, chains in table order."""
        return [
            FetchTask(config=config, token_type=token_type)
            for token_type, configs in self._tokens.items()
            for config in configs.values()
        ]
