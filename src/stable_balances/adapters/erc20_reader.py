from __future__ import annotations

from typing import Protocol

from aiohttp import ClientTimeout
from web3 import AsyncWeb3

from ..abi import load_erc20_abi
from ..domain import TokenConfig
from ..logger import get_logger

logger = get_logger(__name__)


class Erc20Reader(Protocol):
    """Read-only ERC-20 calls against a token deployment's RPC endpoint."""

    async def decimals(self, config: TokenConfig) -> int: ...

    async def balance_of(self, config: TokenConfig, wallet_address: str) -> int: ...

    async def close(self) -> None: ...


class Web3Erc20Reader:
    """ERC-20 reader backed by ``AsyncWeb3`` over HTTP.

    One client is kept per RPC URL. Reads are plain coroutines, so a caller
    wrapping them in ``asyncio.wait_for`` cancels the in-flight HTTP request
    when the deadline passes.
    """

    def __init__(self, request_timeout: float | None = None):
        self._request_timeout = request_timeout
        self._clients: dict[str, AsyncWeb3] = {}

    def _client(self, rpc_url: str) -> AsyncWeb3:
        w3 = self._clients.get(rpc_url)
        if w3 is None:
            request_kwargs = (
                {"timeout": ClientTimeout(total=self._request_timeout)}
                if self._request_timeout
                else {}
            )
            # single attempt per read; chain id fetched once per client
            w3 = AsyncWeb3(
                AsyncWeb3.AsyncHTTPProvider(
                    rpc_url,
                    request_kwargs=request_kwargs,
                    exception_retry_configuration=None,
                    cache_allowed_requests=True,
                )
            )
            self._clients[rpc_url] = w3
        return w3

    def _contract(self, config: TokenConfig):
        w3 = self._client(config.rpc_url)
        return w3.eth.contract(
            address=w3.to_checksum_address(config.token_address),
            abi=load_erc20_abi(),
        )

    async def decimals(self, config: TokenConfig) -> int:
        value = await self._contract(config).functions.decimals().call()
        return int(value)

    async def balance_of(self, config: TokenConfig, wallet_address: str) -> int:
        contract = self._contract(config)
        checksum_wallet = AsyncWeb3.to_checksum_address(wallet_address)
        value = await contract.functions.balanceOf(checksum_wallet).call()
        if not isinstance(value, int):
            raise TypeError(f"balanceOf returned non-integer value {value!r}")
        return value

    async def close(self) -> None:
        """Disconnect every provider opened by this reader."""
        clients = list(self._clients.values())
        self._clients.clear()
        for w3 in clients:
            try:
                await w3.provider.disconnect()  # type: ignore[union-attr]
            except AttributeError as e:
                logger.debug(f"Provider disconnect expected (no disconnect method): {e}")
