import asyncio
import gc
from unittest.mock import AsyncMock

import pytest

from fakes import FakeErc20Reader
from stable_balances.cache import InMemoryBalanceCache
from stable_balances.constants import USDC_ADDRESSES, USDT_ADDRESSES
from stable_balances.exceptions import InvalidAddressError, MissingAddressError
from stable_balances.service import BalanceService, normalize_address
from stable_balances.settings import BalanceSettings

ETH_RPC = "https://eth.example/rpc"
BSC_RPC = "https://bsc.example/rpc"


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def settings():
    return BalanceSettings(rpc_urls={1: ETH_RPC, 56: BSC_RPC}, batch_delay=0)


@pytest.fixture
def clock():
    return FakeClock()


def build_service(settings, reader, clock=None):
    service = BalanceService.from_settings(settings, reader=reader)
    if clock is not None:
        service.cache = InMemoryBalanceCache(ttl=settings.cache_duration, clock=clock)
    return service


def test_normalize_address_checksums_lowercase_input(wallet):
    assert normalize_address(wallet.lower()) == wallet
    assert normalize_address(f"  {wallet}  ") == wallet


@pytest.mark.parametrize("address", [None, "", "   "])
def test_normalize_address_requires_value(address):
    with pytest.raises(MissingAddressError, match="Wallet address is required"):
        normalize_address(address)


@pytest.mark.parametrize(
    "address",
    [
        "0x123",
        "d8dA6BF26964aF9D7eEd9e03E53415D37aA96045aa",
        "0xZZdA6BF26964aF9D7eEd9e03E53415D37aA96045",
        # mixed case with a broken checksum
        "0xd8da6BF26964aF9D7eEd9e03E53415D37aA96045",
    ],
)
def test_normalize_address_rejects_malformed(address):
    with pytest.raises(InvalidAddressError, match="Invalid Ethereum address format"):
        normalize_address(address)


@pytest.mark.asyncio
async def test_query_reports_single_balance(settings, wallet):
    reader = FakeErc20Reader(balances={(1, USDC_ADDRESSES[1]): 100_123_456})
    service = build_service(settings, reader)

    response = await service.query(wallet)

    assert response.cached is False
    assert response.next_refresh_in == 30
    assert response.result.total_usd_value == "100.12"
    [asset] = response.result.assets
    assert (asset.chain.id, asset.symbol, asset.balance) == (1, "USDC", "100.123456")


@pytest.mark.asyncio
async def test_query_ranks_assets_across_chains(settings, wallet):
    reader = FakeErc20Reader(
        balances={
            (1, USDC_ADDRESSES[1]): 5 * 10**6,
            (56, USDT_ADDRESSES[56]): 250 * 10**18,
            (1, USDT_ADDRESSES[1]): 40 * 10**6,
        }
    )
    service = build_service(settings, reader)

    response = await service.query(wallet)

    assert [(a.chain.id, a.symbol, a.balance_usd) for a in response.result.assets] == [
        (56, "USDT", "250.00"),
        (1, "USDT", "40.00"),
        (1, "USDC", "5.00"),
    ]
    assert response.result.total_usd_value == "295.00"


@pytest.mark.asyncio
async def test_query_with_no_balances(settings, wallet):
    service = build_service(settings, FakeErc20Reader())

    response = await service.query(wallet)

    assert response.result.assets == ()
    assert response.result.total_usd_value == "0.00"


@pytest.mark.asyncio
async def test_only_configured_chains_are_queried(settings, wallet):
    reader = FakeErc20Reader()
    service = build_service(settings, reader)

    await service.query(wallet)

    assert {chain_id for chain_id, _, _ in reader.balance_calls} == {1, 56}
    assert len(reader.balance_calls) == 4


@pytest.mark.asyncio
async def test_second_query_served_from_cache(settings, wallet, clock):
    reader = FakeErc20Reader(balances={(1, USDC_ADDRESSES[1]): 10**6})
    service = build_service(settings, reader, clock)

    first = await service.query(wallet)
    calls = reader.call_count
    clock.now += 14.5
    second = await service.query(wallet.lower())

    assert reader.call_count == calls
    assert second.cached is True
    assert second.cache_age == 15
    assert second.next_refresh_in == 16
    assert second.result == first.result


@pytest.mark.asyncio
async def test_stale_entry_triggers_refetch(settings, wallet, clock):
    reader = FakeErc20Reader()
    service = build_service(settings, reader, clock)

    await service.query(wallet)
    calls = reader.call_count
    clock.now += 30
    response = await service.query(wallet)

    assert reader.call_count == 2 * calls
    assert response.cached is False


@pytest.mark.asyncio
async def test_force_refresh_bypasses_fresh_entry(settings, wallet, clock):
    reader = FakeErc20Reader()
    service = build_service(settings, reader, clock)

    await service.query(wallet)
    calls = reader.call_count
    clock.now += 1
    response = await service.query(wallet, force_refresh=True)

    assert reader.call_count == 2 * calls
    assert response.cached is False
    assert response.cache_age is None
    assert service.cache.age(service.cache.get(wallet)) == 0


@pytest.mark.asyncio
async def test_invalid_address_makes_no_calls(settings):
    reader = FakeErc20Reader()
    service = build_service(settings, reader)

    with pytest.raises(InvalidAddressError):
        await service.query("not-an-address")

    assert reader.call_count == 0
    assert len(service.cache) == 0


@pytest.mark.asyncio
async def test_timed_out_chain_is_left_out(wallet):
    settings = BalanceSettings(
        rpc_urls={1: ETH_RPC, 56: BSC_RPC}, batch_delay=0, rpc_timeout=0.05
    )
    reader = FakeErc20Reader(
        balances={(1, USDC_ADDRESSES[1]): 10**6, (56, USDT_ADDRESSES[56]): 10**18},
        slow_chains={56: 5.0},
    )
    service = build_service(settings, reader)

    response = await asyncio.wait_for(service.query(wallet), timeout=2)

    assert [a.chain.id for a in response.result.assets] == [1]
    assert reader.in_flight == 0


@pytest.mark.asyncio
async def test_concurrent_refreshes_share_one_pipeline_run(settings, wallet):
    reader = FakeErc20Reader(delay=0.02)
    service = build_service(settings, reader)

    first, second = await asyncio.gather(
        service.query(wallet), service.query(wallet.lower())
    )

    assert len(reader.balance_calls) == 4
    assert first.result is second.result
    assert service._inflight == {}


@pytest.mark.asyncio
async def test_failed_pipeline_leaves_cache_untouched(settings, wallet):
    service = build_service(settings, FakeErc20Reader())
    service.scheduler.run = AsyncMock(side_effect=RuntimeError("scheduler down"))

    with pytest.raises(RuntimeError):
        await service.query(wallet)

    assert service.cache.get(wallet) is None
    assert service._inflight == {}


@pytest.mark.asyncio
async def test_close_releases_reader(settings):
    reader = FakeErc20Reader()
    service = build_service(settings, reader)

    await service.close()

    assert reader.closed


@pytest.mark.asyncio
async def test_refresh_failure_after_caller_cancelled_is_retrieved(settings, wallet):
    loop = asyncio.get_running_loop()
    unhandled: list[dict] = []
    loop.set_exception_handler(lambda _loop, context: unhandled.append(context))
    release = asyncio.Event()

    async def failing_run(wallet_address, tasks):
        await release.wait()
        raise RuntimeError("provider down")

    service = build_service(settings, FakeErc20Reader())
    service.scheduler.run = failing_run
    try:
        caller = asyncio.create_task(service.query(wallet))
        for _ in range(3):
            await asyncio.sleep(0)
        caller.cancel()
        with pytest.raises(asyncio.CancelledError):
            await caller

        release.set()
        for _ in range(5):
            await asyncio.sleep(0)
        gc.collect()

        assert service._inflight == {}
        assert unhandled == []
    finally:
        loop.set_exception_handler(None)
